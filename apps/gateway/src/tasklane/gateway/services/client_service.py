"""ClientService -- 客户登记 CRUD

客户按创建者归属：非管理员只能看到自己的客户，
他人的客户按不存在处理（NotFoundError）。
"""

import structlog
from tasklane.core.access import can_manage_client
from tasklane.core.errors import ConflictError, NotFoundError, ValidationError
from tasklane.core.models import Client, ClientDraft, ClientPatch, User
from tasklane.core.store import StoreGroup, unit_of_work
from tasklane.core.timeutil import utc_now
from ulid import ULID

log = structlog.get_logger()

# 不允许显式置空的字段
_NON_NULLABLE = ("name", "address", "is_active")


class ClientService:
    """客户业务服务"""

    def __init__(self, store_group: StoreGroup) -> None:
        self._stores = store_group

    async def list_clients(self, actor: User) -> list[Client]:
        owner = None if actor.is_admin else actor.user_id
        return await self._stores.client_store.list_clients(created_by=owner)

    async def search_clients(self, actor: User, query: str | None) -> list[Client]:
        """Raises:
        ValidationError: 查询串为空
        """
        if not query or not query.strip():
            raise ValidationError("Search query is required")
        owner = None if actor.is_admin else actor.user_id
        return await self._stores.client_store.search_clients(query.strip(), created_by=owner)

    async def create_client(self, actor: User, draft: ClientDraft) -> Client:
        now = utc_now()
        client = Client(
            client_id=str(ULID()),
            name=draft.name.strip(),
            email=draft.email,
            phone=draft.phone,
            address=draft.address,
            is_active=draft.is_active,
            created_by=actor.user_id,
            created_at=now,
            updated_at=now,
        )
        async with unit_of_work(self._stores) as stores:
            await stores.client_store.create_client(client)

        log.info("client_created", client_id=client.client_id, actor_id=actor.user_id)
        return client

    async def get_client(self, actor: User, client_id: str) -> Client:
        """Raises:
        NotFoundError: 客户不存在或不属于 actor
        """
        client = await self._stores.client_store.get_client(client_id)
        if client is None or not can_manage_client(client, actor):
            raise NotFoundError("Client", client_id)
        return client

    async def update_client(self, actor: User, client_id: str, patch: ClientPatch) -> Client:
        changes = patch.model_dump(exclude_unset=True)
        for key in _NON_NULLABLE:
            if key in changes and changes[key] is None:
                changes.pop(key)

        async with unit_of_work(self._stores) as stores:
            await self.get_client(actor, client_id)
            await stores.client_store.update_client(client_id, changes, utc_now())

        log.info(
            "client_updated",
            client_id=client_id,
            actor_id=actor.user_id,
            fields=sorted(changes),
        )
        return await self.get_client(actor, client_id)

    async def delete_client(self, actor: User, client_id: str) -> None:
        """Raises:
        NotFoundError: 客户不存在或不属于 actor
        ConflictError: 客户仍被任务引用
        """
        async with unit_of_work(self._stores) as stores:
            await self.get_client(actor, client_id)
            if await stores.task_store.count_tasks_for_client(client_id):
                raise ConflictError("Client is still referenced by tasks")
            await stores.client_store.delete_client(client_id)

        log.info("client_deleted", client_id=client_id, actor_id=actor.user_id)
