"""Client Domain Model"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from ..config import CLIENT_NAME_MAX_LENGTH

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


def normalize_email(value: Any) -> Any:
    """邮箱去空白、转小写，空串视为未填写"""
    if isinstance(value, str):
        value = value.strip().lower()
        return value or None
    return value


class ClientAddress(BaseModel):
    """客户地址"""

    street: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    postal_code: str | None = None


class ClientSummary(BaseModel):
    """客户摘要 -- 任务读取时展开"""

    client_id: str
    name: str


class Client(BaseModel):
    """Client 数据模型"""

    client_id: str = Field(description="唯一标识，ULID 格式")
    name: str = Field(description="客户名称")
    email: str | None = Field(default=None, description="邮箱")
    phone: str | None = Field(default=None, description="电话")
    address: ClientAddress = Field(default_factory=ClientAddress, description="地址")
    is_active: bool = Field(default=True, description="是否启用")
    created_by: str = Field(description="创建者 user_id")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")

    @property
    def full_address(self) -> str:
        """非空地址片段以逗号拼接"""
        parts = [
            self.address.street,
            self.address.city,
            self.address.state,
            self.address.postal_code,
            self.address.country,
        ]
        return ", ".join(p for p in parts if p)

    def summary(self) -> ClientSummary:
        return ClientSummary(client_id=self.client_id, name=self.name)


class ClientDraft(BaseModel):
    """创建客户的输入"""

    name: str = Field(min_length=1, max_length=CLIENT_NAME_MAX_LENGTH)
    email: str | None = Field(default=None, pattern=EMAIL_PATTERN)
    phone: str | None = None
    address: ClientAddress = Field(default_factory=ClientAddress)
    is_active: bool = True

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email_field(cls, value: Any) -> Any:
        return normalize_email(value)


class ClientPatch(BaseModel):
    """更新客户的输入，仅包含显式提交的字段"""

    name: str | None = Field(default=None, min_length=1, max_length=CLIENT_NAME_MAX_LENGTH)
    email: str | None = Field(default=None, pattern=EMAIL_PATTERN)
    phone: str | None = None
    address: ClientAddress | None = None
    is_active: bool | None = None

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email_field(cls, value: Any) -> Any:
        return normalize_email(value)
