"""UserService -- 注册、登录、会话与账户管理

会话为不透明 bearer token，库中只保存 SHA-256。
"""

import asyncio
from datetime import timedelta

import structlog
from tasklane.core.access import require_admin
from tasklane.core.config import AuthConfig
from tasklane.core.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from tasklane.core.models import User, UserRecord, UserRole, UserSummary
from tasklane.core.models.client import normalize_email
from tasklane.core.security import hash_password, hash_token, new_session_token, verify_password
from tasklane.core.store import StoreGroup, unit_of_work
from tasklane.core.timeutil import utc_now
from ulid import ULID

log = structlog.get_logger()

_BAD_CREDENTIALS = "Incorrect email or password"


class UserService:
    """用户业务服务"""

    def __init__(self, store_group: StoreGroup, auth_config: AuthConfig) -> None:
        self._stores = store_group
        self._config = auth_config

    async def register(self, name: str, email: str, password: str) -> tuple[User, str]:
        """注册普通用户并签发会话

        Returns:
            (用户, 会话 token)

        Raises:
            ConflictError: 邮箱已注册
        """
        email = normalize_email(email)
        # PBKDF2 在线程中执行，不阻塞事件循环
        password_hash = await asyncio.to_thread(
            hash_password, password, self._config.password_iterations
        )
        now = utc_now()
        record = UserRecord(
            user_id=str(ULID()),
            name=name.strip(),
            email=email,
            role=UserRole.USER,
            created_at=now,
            updated_at=now,
            password_hash=password_hash,
        )

        async with unit_of_work(self._stores) as stores:
            if await stores.user_store.get_user_by_email(email) is not None:
                raise ConflictError("Email already registered")
            await stores.user_store.create_user(record)
            token = await self._issue_session(record.user_id)

        log.info("user_registered", user_id=record.user_id)
        return record.public(), token

    async def login(self, email: str, password: str) -> tuple[User, str]:
        """校验凭证并签发会话

        Raises:
            AuthenticationError: 邮箱或密码错误，或账户已停用
        """
        record = await self._stores.user_store.get_user_by_email(normalize_email(email) or "")
        if record is None or not await asyncio.to_thread(
            verify_password, password, record.password_hash
        ):
            log.info("login_failed", reason="bad_credentials")
            raise AuthenticationError(_BAD_CREDENTIALS)
        if not record.active:
            log.info("login_failed", reason="inactive", user_id=record.user_id)
            raise AuthenticationError(_BAD_CREDENTIALS)

        async with unit_of_work(self._stores):
            token = await self._issue_session(record.user_id)

        log.info("user_logged_in", user_id=record.user_id)
        return record.public(), token

    async def logout(self, token: str) -> None:
        async with unit_of_work(self._stores) as stores:
            await stores.user_store.delete_session(hash_token(token))

    async def authenticate(self, token: str | None) -> User:
        """将 bearer token 解析为有效用户

        Raises:
            AuthenticationError: token 缺失、无效、过期，或用户已停用
        """
        if not token:
            raise AuthenticationError("Authentication required")
        user = await self._stores.user_store.get_session_user(hash_token(token), utc_now())
        if user is None:
            raise AuthenticationError("Invalid or expired session")
        return user

    async def update_me(
        self,
        actor: User,
        name: str | None = None,
        email: str | None = None,
    ) -> User:
        """更新本人姓名 / 邮箱

        Raises:
            ConflictError: 新邮箱已被其他用户使用
        """
        return await self._update_user(actor.user_id, name=name, email=email)

    async def update_password(
        self,
        actor: User,
        current_password: str,
        new_password: str,
    ) -> str:
        """修改密码，吊销全部会话并签发新 token

        Raises:
            AuthenticationError: 当前密码错误
        """
        record = await self._stores.user_store.get_user_record(actor.user_id)
        if record is None:
            raise NotFoundError("User", actor.user_id)
        if not await asyncio.to_thread(verify_password, current_password, record.password_hash):
            raise AuthenticationError("Current password is incorrect")
        new_hash = await asyncio.to_thread(
            hash_password, new_password, self._config.password_iterations
        )

        async with unit_of_work(self._stores) as stores:
            await stores.user_store.update_user(
                actor.user_id,
                utc_now(),
                password_hash=new_hash,
            )
            await stores.user_store.delete_sessions_for_user(actor.user_id)
            token = await self._issue_session(actor.user_id)

        log.info("user_password_changed", user_id=actor.user_id)
        return token

    async def delete_me(self, actor: User) -> None:
        """停用本人账户（软删除），保留任务 / 客户引用"""
        async with unit_of_work(self._stores) as stores:
            await stores.user_store.update_user(actor.user_id, utc_now(), active=False)
            await stores.user_store.delete_sessions_for_user(actor.user_id)
        log.info("user_deactivated", user_id=actor.user_id)

    async def list_users(self, actor: User) -> list[UserSummary]:
        """启用中的用户摘要（指派人选择）"""
        users = await self._stores.user_store.list_users()
        return [u.summary() for u in users]

    async def admin_update_user(
        self,
        actor: User,
        user_id: str,
        *,
        name: str | None = None,
        email: str | None = None,
        role: UserRole | None = None,
        active: bool | None = None,
    ) -> User:
        """管理员更新任意用户

        Raises:
            AuthorizationError: 非管理员
            NotFoundError: 用户不存在
        """
        require_admin(actor)
        user = await self._update_user(user_id, name=name, email=email, role=role, active=active)
        if active is False:
            async with unit_of_work(self._stores) as stores:
                await stores.user_store.delete_sessions_for_user(user_id)
        log.info("user_updated_by_admin", user_id=user_id, actor_id=actor.user_id)
        return user

    async def admin_delete_user(self, actor: User, user_id: str) -> None:
        """管理员物理删除用户（被引用时拒绝）

        Raises:
            AuthorizationError: 非管理员
            ValidationError: 删除自己
            NotFoundError: 用户不存在
            ConflictError: 用户仍被任务或客户引用
        """
        require_admin(actor)
        if user_id == actor.user_id:
            raise ValidationError("Admins cannot delete their own account")

        async with unit_of_work(self._stores) as stores:
            if await stores.user_store.get_user(user_id) is None:
                raise NotFoundError("User", user_id)
            if await stores.task_store.count_references_to_user(user_id):
                raise ConflictError("User is still referenced by tasks or clients")
            await stores.user_store.delete_user(user_id)

        log.info("user_deleted", user_id=user_id, actor_id=actor.user_id)

    async def _update_user(self, user_id: str, **fields) -> User:
        if fields.get("name") is not None:
            fields["name"] = fields["name"].strip()
        if fields.get("email") is not None:
            fields["email"] = normalize_email(fields["email"])

        async with unit_of_work(self._stores) as stores:
            email = fields.get("email")
            if email is not None:
                other = await stores.user_store.get_user_by_email(email)
                if other is not None and other.user_id != user_id:
                    raise ConflictError("Email already registered")
            if not await stores.user_store.update_user(user_id, utc_now(), **fields):
                raise NotFoundError("User", user_id)

        user = await self._stores.user_store.get_user(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    async def _issue_session(self, user_id: str) -> str:
        """在当前事务内创建会话，返回明文 token"""
        token = new_session_token()
        now = utc_now()
        await self._stores.user_store.create_session(
            hash_token(token),
            user_id,
            now,
            now + timedelta(hours=self._config.session_ttl_hours),
        )
        return token
