"""任务路由

POST   /api/tasks                    创建任务
GET    /api/tasks                    列表（user_id 必填，筛选 / 排序 / 字段选择 / 分页）
GET    /api/tasks/stats              按状态统计（管理员）
GET    /api/tasks/assigned-to-me     当前用户被指派的任务
GET    /api/tasks/{task_id}          任务详情
PATCH  /api/tasks/{task_id}/status   变更状态
PATCH  /api/tasks/{task_id}          部分字段更新
DELETE /api/tasks/{task_id}          删除任务
"""

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from starlette.responses import Response
from tasklane.core.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from tasklane.core.models import TaskDraft, TaskPatch, TaskPriority, TaskQuery, TaskStatus, User

from ..deps import get_current_user, get_task_service
from ..services.task_service import TaskService, project_task

router = APIRouter()


class StatusUpdateRequest(BaseModel):
    """状态变更请求体；取值校验在服务层完成"""

    status: str | None = None


@router.post("/api/tasks", status_code=status.HTTP_201_CREATED)
async def create_task(
    draft: TaskDraft,
    actor: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """创建任务，创建者为当前用户"""
    view = await service.create_task(actor, draft)
    return {"task": view.model_dump(mode="json")}


@router.get("/api/tasks")
async def list_tasks(
    user_id: str | None = Query(default=None, description="查询范围：创建或被指派给该用户"),
    status_filter: TaskStatus | None = Query(default=None, alias="status"),
    priority: TaskPriority | None = Query(default=None),
    client_id: str | None = Query(default=None),
    sort: str | None = Query(default=None, description="逗号分隔，- 前缀倒序"),
    fields: str | None = Query(default=None, description="逗号分隔的返回字段"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    actor: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """分页查询任务，total 与分页参数无关"""
    query = TaskQuery(
        status=status_filter,
        priority=priority,
        client_id=client_id,
        sort=sort,
        fields=fields,
        page=page,
        limit=limit,
    )
    result = await service.list_tasks(actor, user_id, query)
    selected = query.selected_fields()
    return {
        "tasks": [project_task(t, selected) for t in result.tasks],
        "total": result.total,
        "results": len(result.tasks),
        "page": result.page,
        "limit": result.limit,
    }


@router.get("/api/tasks/stats")
async def task_stats(
    actor: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """按状态分组的数量与平均优先级分值"""
    stats = await service.get_stats(actor)
    return {"stats": [s.model_dump() for s in stats]}


@router.get("/api/tasks/assigned-to-me")
async def assigned_to_me(
    status_filter: str | None = Query(default=None, alias="status"),
    actor: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    tasks = await service.list_assigned_to_me(actor, status_filter)
    return {
        "tasks": [t.model_dump(mode="json") for t in tasks],
        "results": len(tasks),
    }


@router.get("/api/tasks/{task_id}")
async def get_task(
    task_id: str,
    actor: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    view = await service.get_task(actor, task_id)
    return {"task": view.model_dump(mode="json")}


@router.patch("/api/tasks/{task_id}/status")
async def update_task_status(
    task_id: str,
    body: StatusUpdateRequest,
    actor: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """变更状态：创建者或指派人"""
    view = await service.update_status(actor, task_id, body.status)
    return {"task": view.model_dump(mode="json")}


@router.patch("/api/tasks/{task_id}")
async def update_task(
    task_id: str,
    patch: TaskPatch,
    actor: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """部分字段更新：创建者或管理员"""
    view = await service.update_task(actor, task_id, patch)
    return {"task": view.model_dump(mode="json")}


@router.delete("/api/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: str,
    actor: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    await service.delete_task(actor, task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
