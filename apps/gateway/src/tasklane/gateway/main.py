"""FastAPI 应用主文件

app 创建 + lifespan 管理：DB 初始化/关闭 + 认证配置 + 路由注册 + 统一错误渲染。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from starlette.responses import JSONResponse
from tasklane.core.config import get_db_path, load_auth_config
from tasklane.core.errors import TaskLaneError, ValidationError
from tasklane.core.store import create_store_group

from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.trace_mw import TraceMiddleware
from .routes import clients, health, tasks, users

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时初始化 DB，关闭时清理连接"""
    db_path = get_db_path()
    store_group = await create_store_group(db_path)
    app.state.store_group = store_group
    app.state.auth_config = load_auth_config()
    log.info("store_group_initialized", db_path=db_path)

    yield

    if hasattr(app.state, "store_group") and app.state.store_group:
        await app.state.store_group.close()


def _error_response(
    status_code: int,
    code: str,
    message: str,
    details: list | None = None,
) -> JSONResponse:
    error: dict = {"code": code, "message": message}
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error})


async def handle_tasklane_error(request: Request, exc: TaskLaneError) -> JSONResponse:
    """领域异常 -> {"error": {"code", "message"}}"""
    if exc.status_code >= 500:
        log.error("request_failed", error_code=exc.code, error=exc.message)
    else:
        log.info("request_rejected", status_code=exc.status_code, error_code=exc.code)
    details = exc.details if isinstance(exc, ValidationError) else None
    return _error_response(exc.status_code, exc.code, exc.message, details)


async def handle_request_validation_error(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """请求体 / 查询参数校验失败统一渲染为 400"""
    details = [
        {"loc": list(err.get("loc", ())), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    message = "; ".join(
        f"{'.'.join(str(p) for p in d['loc'][1:]) or 'body'}: {d['message']}" for d in details
    )
    return _error_response(400, ValidationError.code, message or "Invalid request", details)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    log.exception("unhandled_exception", error_type=type(exc).__name__)
    return _error_response(500, "INTERNAL_ERROR", "Internal server error")


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="TaskLane Gateway",
        version="0.1.0",
        description="TaskLane 任务 / 客户管理 API",
        lifespan=lifespan,
    )

    # 注册中间件（顺序：先 Trace 后 Logging）
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)

    # 初始化日志
    setup_logging()
    setup_logfire(app)

    app.add_exception_handler(TaskLaneError, handle_tasklane_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    # 注册路由
    app.include_router(users.router, tags=["users"])
    app.include_router(clients.router, tags=["clients"])
    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(health.router, tags=["health"])

    # 挂载前端静态文件（frontend/dist/ -> /）
    # 在所有 API 路由之后挂载，确保 API 优先匹配
    gateway_root = Path(__file__).resolve().parent
    frontend_dist = gateway_root.parents[4] / "frontend" / "dist"
    if frontend_dist.exists():
        app.mount("/", StaticFiles(directory=str(frontend_dist), html=True), name="frontend")

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
