"""TraceMiddleware -- 任务操作追踪

从 /api/tasks/{task_id}[/...] 路径中提取 task_id 并绑定到日志上下文，
贯穿该请求内的全部任务日志。
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# /api/tasks 下的非 task_id 子路由
_RESERVED_SEGMENTS = frozenset({"stats", "assigned-to-me"})

# ULID 长度
_TASK_ID_LENGTH = 26


def extract_task_id(path: str) -> str | None:
    """/api/tasks/{task_id}/status -> task_id；不匹配时返回 None"""
    parts = [p for p in path.split("/") if p]
    if len(parts) < 3 or parts[0] != "api" or parts[1] != "tasks":
        return None
    candidate = parts[2]
    if candidate in _RESERVED_SEGMENTS or len(candidate) != _TASK_ID_LENGTH:
        return None
    return candidate


class TraceMiddleware(BaseHTTPMiddleware):
    """任务级追踪中间件 -- 为任务操作绑定 task_id"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        task_id = extract_task_id(request.url.path)
        if task_id:
            structlog.contextvars.bind_contextvars(task_id=task_id)

        return await call_next(request)
