"""apps/gateway 测试配置 -- httpx AsyncClient + 临时 SQLite

ASGITransport 不触发 lifespan，这里手动初始化 app.state。
"""

import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from tasklane.core.config import AuthConfig
from tasklane.core.models import UserRole
from tasklane.core.store import create_store_group, unit_of_work
from tasklane.core.timeutil import utc_now

# 测试用最小迭代次数，缩短注册 / 登录耗时
TEST_AUTH_CONFIG = AuthConfig(password_iterations=1000)


@pytest_asyncio.fixture
async def app(tmp_path: Path):
    """创建测试用 FastAPI app 实例"""
    os.environ["TASKLANE_DB_PATH"] = str(tmp_path / "sqlite" / "test.db")
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from tasklane.gateway.main import create_app

    application = create_app()
    store_group = await create_store_group(os.environ["TASKLANE_DB_PATH"])
    application.state.store_group = store_group
    application.state.auth_config = TEST_AUTH_CONFIG

    yield application

    await store_group.close()
    for key in ["TASKLANE_DB_PATH", "LOGFIRE_SEND_TO_LOGFIRE"]:
        os.environ.pop(key, None)


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


class Account:
    """已注册用户：id + 认证头"""

    def __init__(self, user: dict, token: str) -> None:
        self.user = user
        self.user_id: str = user["user_id"]
        self.token = token
        self.headers = {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def register(client, app) -> Callable[..., Awaitable[Account]]:
    """注册用户；admin=True 时直接在库中提升为管理员"""

    async def _register(name: str, *, admin: bool = False, password: str = "s3cret-pass") -> Account:
        resp = await client.post(
            "/api/users/register",
            json={"name": name, "email": f"{name.lower()}@example.com", "password": password},
        )
        assert resp.status_code == 201, resp.text
        data = resp.json()
        account = Account(data["user"], data["token"])
        if admin:
            async with unit_of_work(app.state.store_group) as stores:
                await stores.user_store.update_user(
                    account.user_id, utc_now(), role=UserRole.ADMIN
                )
        return account

    return _register


@pytest_asyncio.fixture
async def new_client(client) -> Callable[..., Awaitable[str]]:
    """以 owner 身份创建客户，返回 client_id"""

    async def _new_client(owner: Account, name: str = "Acme") -> str:
        resp = await client.post("/api/clients", json={"name": name}, headers=owner.headers)
        assert resp.status_code == 201, resp.text
        return resp.json()["client"]["client_id"]

    return _new_client


@pytest_asyncio.fixture
async def new_task(client) -> Callable[..., Awaitable[dict]]:
    """以 creator 身份创建任务，返回任务 JSON"""

    async def _new_task(creator: Account, client_id: str, assigned_to, **fields) -> dict:
        body = {"title": fields.pop("title", "Task"), "client_id": client_id, "assigned_to": assigned_to}
        body.update(fields)
        resp = await client.post("/api/tasks", json=body, headers=creator.headers)
        assert resp.status_code == 201, resp.text
        return resp.json()["task"]

    return _new_task
