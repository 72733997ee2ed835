"""客户路由

GET    /api/clients                  本人客户（管理员为全部），按名称排序
POST   /api/clients                  创建客户
GET    /api/clients/search?query=    子串搜索
GET    /api/clients/{client_id}      详情
PATCH  /api/clients/{client_id}      更新
DELETE /api/clients/{client_id}      删除（被任务引用时 409）
"""

from fastapi import APIRouter, Depends, Query, status
from starlette.responses import Response
from tasklane.core.models import Client, ClientDraft, ClientPatch, User

from ..deps import get_client_service, get_current_user
from ..services.client_service import ClientService

router = APIRouter()


def _client_payload(client: Client) -> dict:
    data = client.model_dump(mode="json")
    data["full_address"] = client.full_address
    return data


@router.get("/api/clients")
async def list_clients(
    actor: User = Depends(get_current_user),
    service: ClientService = Depends(get_client_service),
):
    clients = await service.list_clients(actor)
    return {"clients": [_client_payload(c) for c in clients], "results": len(clients)}


@router.post("/api/clients", status_code=status.HTTP_201_CREATED)
async def create_client(
    draft: ClientDraft,
    actor: User = Depends(get_current_user),
    service: ClientService = Depends(get_client_service),
):
    client = await service.create_client(actor, draft)
    return {"client": _client_payload(client)}


@router.get("/api/clients/search")
async def search_clients(
    query: str | None = Query(default=None, description="匹配名称、邮箱、电话、地址"),
    actor: User = Depends(get_current_user),
    service: ClientService = Depends(get_client_service),
):
    clients = await service.search_clients(actor, query)
    return {"clients": [_client_payload(c) for c in clients], "results": len(clients)}


@router.get("/api/clients/{client_id}")
async def get_client(
    client_id: str,
    actor: User = Depends(get_current_user),
    service: ClientService = Depends(get_client_service),
):
    client = await service.get_client(actor, client_id)
    return {"client": _client_payload(client)}


@router.patch("/api/clients/{client_id}")
async def update_client(
    client_id: str,
    patch: ClientPatch,
    actor: User = Depends(get_current_user),
    service: ClientService = Depends(get_client_service),
):
    client = await service.update_client(actor, client_id, patch)
    return {"client": _client_payload(client)}


@router.delete("/api/clients/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client(
    client_id: str,
    actor: User = Depends(get_current_user),
    service: ClientService = Depends(get_client_service),
):
    await service.delete_client(actor, client_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
