"""客户接口测试"""

from httpx import AsyncClient


class TestClientCrud:
    async def test_create_and_get(self, client: AsyncClient, register):
        ann = await register("Ann")
        resp = await client.post(
            "/api/clients",
            json={
                "name": "Acme",
                "email": "Sales@Acme.io",
                "address": {"street": "1 Main St", "city": "Springfield"},
            },
            headers=ann.headers,
        )
        assert resp.status_code == 201
        created = resp.json()["client"]
        assert created["created_by"] == ann.user_id
        assert created["email"] == "sales@acme.io"
        assert created["is_active"] is True
        assert created["full_address"] == "1 Main St, Springfield"

        resp = await client.get(f"/api/clients/{created['client_id']}", headers=ann.headers)
        assert resp.status_code == 200
        assert resp.json()["client"]["name"] == "Acme"

    async def test_name_required(self, client: AsyncClient, register):
        ann = await register("Ann")
        resp = await client.post("/api/clients", json={"email": "a@b.co"}, headers=ann.headers)
        assert resp.status_code == 400

    async def test_owner_scoped(self, client: AsyncClient, register, new_client):
        ann = await register("Ann")
        bob = await register("Bob")
        root = await register("Root", admin=True)
        client_id = await new_client(ann)

        assert (await client.get(f"/api/clients/{client_id}", headers=bob.headers)).status_code == 404
        assert (await client.get(f"/api/clients/{client_id}", headers=root.headers)).status_code == 200

        bob_list = await client.get("/api/clients", headers=bob.headers)
        root_list = await client.get("/api/clients", headers=root.headers)
        assert bob_list.json()["clients"] == []
        assert root_list.json()["results"] == 1

    async def test_update(self, client: AsyncClient, register, new_client):
        ann = await register("Ann")
        client_id = await new_client(ann)
        resp = await client.patch(
            f"/api/clients/{client_id}",
            json={"phone": "555-0100", "is_active": False},
            headers=ann.headers,
        )
        assert resp.status_code == 200
        data = resp.json()["client"]
        assert data["phone"] == "555-0100"
        assert data["is_active"] is False
        assert data["name"] == "Acme"

    async def test_non_owner_cannot_update(self, client: AsyncClient, register, new_client):
        ann = await register("Ann")
        bob = await register("Bob")
        client_id = await new_client(ann)
        resp = await client.patch(
            f"/api/clients/{client_id}", json={"name": "Mine now"}, headers=bob.headers
        )
        assert resp.status_code == 404

    async def test_delete(self, client: AsyncClient, register, new_client):
        ann = await register("Ann")
        client_id = await new_client(ann)
        resp = await client.delete(f"/api/clients/{client_id}", headers=ann.headers)
        assert resp.status_code == 204
        assert (await client.get(f"/api/clients/{client_id}", headers=ann.headers)).status_code == 404

    async def test_delete_referenced_conflict(
        self, client: AsyncClient, register, new_client, new_task
    ):
        ann = await register("Ann")
        client_id = await new_client(ann)
        await new_task(ann, client_id, ann.user_id)

        resp = await client.delete(f"/api/clients/{client_id}", headers=ann.headers)
        assert resp.status_code == 409


class TestClientSearch:
    async def test_search(self, client: AsyncClient, register, new_client):
        ann = await register("Ann")
        await new_client(ann, "Acme Corp")
        await new_client(ann, "Globex")

        resp = await client.get("/api/clients/search", params={"query": "acme"}, headers=ann.headers)
        assert resp.status_code == 200
        assert [c["name"] for c in resp.json()["clients"]] == ["Acme Corp"]

    async def test_search_scoped_to_owner(self, client: AsyncClient, register, new_client):
        ann = await register("Ann")
        bob = await register("Bob")
        await new_client(ann, "Acme Corp")
        resp = await client.get("/api/clients/search", params={"query": "acme"}, headers=bob.headers)
        assert resp.json()["results"] == 0

    async def test_empty_query_rejected(self, client: AsyncClient, register):
        ann = await register("Ann")
        resp = await client.get("/api/clients/search", params={"query": "  "}, headers=ann.headers)
        assert resp.status_code == 400
