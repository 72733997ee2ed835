"""依赖注入模块 -- 通过 FastAPI Depends 注入 Store、服务与当前用户

Store 实例通过 app.state 管理，在 lifespan 中初始化/清理。
当前用户由 Authorization: Bearer <token> 解析，显式传给各服务。
"""

from fastapi import Depends, Request
from tasklane.core.models import User
from tasklane.core.store import StoreGroup

from .services.client_service import ClientService
from .services.task_service import TaskService
from .services.user_service import UserService


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_user_service(request: Request) -> UserService:
    return UserService(request.app.state.store_group, request.app.state.auth_config)


def get_task_service(store_group: StoreGroup = Depends(get_store_group)) -> TaskService:
    return TaskService(store_group)


def get_client_service(store_group: StoreGroup = Depends(get_store_group)) -> ClientService:
    return ClientService(store_group)


def get_bearer_token(request: Request) -> str | None:
    """提取 bearer token；缺失或格式不符时返回 None"""
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_current_user(
    token: str | None = Depends(get_bearer_token),
    user_service: UserService = Depends(get_user_service),
) -> User:
    """解析当前用户

    Raises:
        AuthenticationError: token 缺失、无效或已过期
    """
    return await user_service.authenticate(token)
