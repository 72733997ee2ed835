"""集成测试共享 fixture"""

import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from tasklane.core.config import AuthConfig
from tasklane.core.models import UserRole
from tasklane.core.store import create_store_group, unit_of_work
from tasklane.core.timeutil import utc_now


@pytest_asyncio.fixture
async def integration_app(tmp_path: Path):
    """集成测试用 FastAPI app"""
    os.environ["TASKLANE_DB_PATH"] = str(tmp_path / "test.db")
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from tasklane.gateway.main import create_app

    app = create_app()

    store_group = await create_store_group(str(tmp_path / "test.db"))
    app.state.store_group = store_group
    app.state.auth_config = AuthConfig(password_iterations=1000)

    yield app

    await store_group.close()
    os.environ.pop("TASKLANE_DB_PATH", None)
    os.environ.pop("LOGFIRE_SEND_TO_LOGFIRE", None)


@pytest_asyncio.fixture
async def client(integration_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def signup(client, integration_app):
    """注册并返回 (user_id, 认证头)"""

    async def _signup(name: str, *, admin: bool = False) -> tuple[str, dict]:
        resp = await client.post(
            "/api/users/register",
            json={"name": name, "email": f"{name.lower()}@example.com", "password": "s3cret-pass"},
        )
        assert resp.status_code == 201, resp.text
        data = resp.json()
        if admin:
            async with unit_of_work(integration_app.state.store_group) as stores:
                await stores.user_store.update_user(
                    data["user"]["user_id"], utc_now(), role=UserRole.ADMIN
                )
        return data["user"]["user_id"], {"Authorization": f"Bearer {data['token']}"}

    return _signup
