"""User Domain Model

User 不含凭证字段，凭证只存在于 UserRecord（仅认证流程使用）。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import UserRole


class UserSummary(BaseModel):
    """用户摘要 -- 任务 creator/assignee 展开后的形态"""

    user_id: str = Field(description="用户 ID")
    name: str = Field(description="姓名")
    email: str = Field(description="邮箱")


class User(BaseModel):
    """User 数据模型（不含凭证）"""

    user_id: str = Field(description="唯一标识，ULID 格式")
    name: str = Field(description="姓名")
    email: str = Field(description="邮箱，唯一")
    role: UserRole = Field(default=UserRole.USER, description="角色")
    active: bool = Field(default=True, description="是否启用")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def summary(self) -> UserSummary:
        return UserSummary(user_id=self.user_id, name=self.name, email=self.email)


class UserRecord(User):
    """含凭证哈希的用户记录"""

    password_hash: str = Field(description="PBKDF2 凭证哈希")

    def public(self) -> User:
        """去掉凭证字段"""
        return User(**self.model_dump(exclude={"password_hash"}))
