"""用户与会话路由

POST   /api/users/register          注册（角色固定为 user）
POST   /api/users/login             登录
POST   /api/users/logout            注销当前会话
GET    /api/users/me                当前用户
PATCH  /api/users/update-me         更新姓名 / 邮箱
PATCH  /api/users/update-password   修改密码（吊销其余会话）
DELETE /api/users/delete-me         停用本人账户
GET    /api/users                   启用中的用户摘要
PATCH  /api/users/{user_id}         管理员更新用户
DELETE /api/users/{user_id}         管理员删除用户
"""

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from starlette.responses import Response
from tasklane.core.config import PASSWORD_MIN_LENGTH
from tasklane.core.models import User, UserRole
from tasklane.core.models.client import EMAIL_PATTERN

from ..deps import get_bearer_token, get_current_user, get_user_service
from ..services.user_service import UserService

router = APIRouter()


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: str = Field(pattern=EMAIL_PATTERN)
    password: str = Field(min_length=PASSWORD_MIN_LENGTH)


class LoginRequest(BaseModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class UpdateMeRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    email: str | None = Field(default=None, pattern=EMAIL_PATTERN)


class UpdatePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=PASSWORD_MIN_LENGTH)


class AdminUpdateUserRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    email: str | None = Field(default=None, pattern=EMAIL_PATTERN)
    role: UserRole | None = None
    active: bool | None = None


def _auth_payload(user: User, token: str) -> dict:
    return {"user": user.model_dump(mode="json"), "token": token}


@router.post("/api/users/register", status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    service: UserService = Depends(get_user_service),
):
    user, token = await service.register(body.name, body.email, body.password)
    return _auth_payload(user, token)


@router.post("/api/users/login")
async def login(
    body: LoginRequest,
    service: UserService = Depends(get_user_service),
):
    user, token = await service.login(body.email, body.password)
    return _auth_payload(user, token)


@router.post("/api/users/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    actor: User = Depends(get_current_user),
    token: str | None = Depends(get_bearer_token),
    service: UserService = Depends(get_user_service),
):
    await service.logout(token or "")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/api/users/me")
async def me(actor: User = Depends(get_current_user)):
    return {"user": actor.model_dump(mode="json")}


@router.patch("/api/users/update-me")
async def update_me(
    body: UpdateMeRequest,
    actor: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    user = await service.update_me(actor, name=body.name, email=body.email)
    return {"user": user.model_dump(mode="json")}


@router.patch("/api/users/update-password")
async def update_password(
    body: UpdatePasswordRequest,
    actor: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    token = await service.update_password(actor, body.current_password, body.new_password)
    return _auth_payload(actor, token)


@router.delete("/api/users/delete-me", status_code=status.HTTP_204_NO_CONTENT)
async def delete_me(
    actor: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    await service.delete_me(actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/api/users")
async def list_users(
    actor: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    users = await service.list_users(actor)
    return {"users": [u.model_dump() for u in users], "results": len(users)}


@router.patch("/api/users/{user_id}")
async def admin_update_user(
    user_id: str,
    body: AdminUpdateUserRequest,
    actor: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    user = await service.admin_update_user(
        actor,
        user_id,
        name=body.name,
        email=body.email,
        role=body.role,
        active=body.active,
    )
    return {"user": user.model_dump(mode="json")}


@router.delete("/api/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def admin_delete_user(
    user_id: str,
    actor: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    await service.admin_delete_user(actor, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
