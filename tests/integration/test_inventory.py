import pytest
from httpx import AsyncClient
from fastapi import status
from sqlalchemy.future import select
from ris_app.models.inventory.item import Item
from ris_app.services.inventory.stock_transaction_service import StockTransactionService

def signed(transaction: dict) -> int:
    return transaction["quantity"] if transaction["type"] == "in" else -transaction["quantity"]

@pytest.mark.asyncio
class TestItems:
    """Item endpoints and their ledger side effects"""

    async def test_create_item_logs_opening_stock(self, client: AsyncClient, admin_headers, create_item):
        item = await create_item(name="Ballpen Black", quantity=40, sku="BP-001")

        assert item["quantity"] == 40
        assert item["sku"] == "BP-001"

        response = await client.get(f"/api/v1/items/{item['id']}/transactions", headers=admin_headers)
        assert response.status_code == status.HTTP_200_OK
        transactions = response.json()["data"]
        assert len(transactions) == 1
        assert transactions[0]["type"] == "in"
        assert transactions[0]["quantity"] == 40
        assert transactions[0]["balance_after"] == 40
        assert transactions[0]["notes"] == "Initial stock - Item created"

    async def test_create_item_requires_admin(self, client: AsyncClient, user_headers):
        response = await client.post("/api/v1/items/", json={"name": "Stapler"}, headers=user_headers)

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json() == {"success": False, "message": "User role is not authorized to access this route"}

    async def test_missing_token_is_rejected(self, client: AsyncClient):
        response = await client.get("/api/v1/items/")
        assert response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)
        assert response.json()["success"] is False

    async def test_duplicate_sku_conflicts(self, client: AsyncClient, admin_headers, create_item):
        await create_item(name="Folder", sku="FLD-1")

        response = await client.post(
            "/api/v1/items/", json={"name": "Folder Long", "sku": "FLD-1"}, headers=admin_headers
        )
        assert response.status_code == status.HTTP_409_CONFLICT
        assert "FLD-1" in response.json()["message"]

    async def test_list_items_filters(self, client: AsyncClient, user_headers, create_item):
        await create_item(name="Alcohol 500ml", quantity=3, min_stock_level=5)
        await create_item(name="Tissue Roll", quantity=100, min_stock_level=5)

        response = await client.get("/api/v1/items/", params={"search": "tissue"}, headers=user_headers)
        assert response.json()["count"] == 1
        assert response.json()["data"][0]["name"] == "Tissue Roll"

        response = await client.get("/api/v1/items/low-stock", headers=user_headers)
        names = [item["name"] for item in response.json()["data"]]
        assert names == ["Alcohol 500ml"]

    async def test_update_quantity_records_adjustments(self, client: AsyncClient, admin_headers, create_item):
        item = await create_item(quantity=10)

        response = await client.put(f"/api/v1/items/{item['id']}", json={"quantity": 25}, headers=admin_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["quantity"] == 25

        response = await client.put(f"/api/v1/items/{item['id']}", json={"quantity": 5}, headers=admin_headers)
        assert response.json()["data"]["quantity"] == 5

        response = await client.get(f"/api/v1/items/{item['id']}/transactions", headers=admin_headers)
        transactions = response.json()["data"]
        # Newest first
        assert [(t["type"], t["quantity"], t["balance_after"]) for t in transactions] == [
            ("out", 20, 5),
            ("in", 15, 25),
            ("in", 10, 10),
        ]
        assert transactions[0]["notes"].startswith("Stock adjustment")
        assert transactions[1]["notes"].startswith("Restocking")

    async def test_get_unknown_item(self, client: AsyncClient, user_headers):
        response = await client.get("/api/v1/items/999", headers=user_headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["message"] == "Item not found"

@pytest.mark.asyncio
class TestStockTransactions:
    """Direct stock in/out entries"""

    async def test_stock_in_and_out(self, client: AsyncClient, admin_headers, create_item):
        item = await create_item(quantity=10)

        response = await client.post(
            "/api/v1/transactions/",
            json={"item_id": item["id"], "type": "in", "quantity": 5, "notes": "Delivery"},
            headers=admin_headers,
        )
        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["data"]["balance_after"] == 15
        assert response.json()["data"]["item"]["quantity"] == 15

        response = await client.post(
            "/api/v1/transactions/",
            json={"item_id": item["id"], "type": "out", "quantity": 15},
            headers=admin_headers,
        )
        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["data"]["balance_after"] == 0

    async def test_overdraw_leaves_stock_and_log_unchanged(self, client: AsyncClient, admin_headers, create_item):
        item = await create_item(quantity=4)

        response = await client.post(
            "/api/v1/transactions/",
            json={"item_id": item["id"], "type": "out", "quantity": 5},
            headers=admin_headers,
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["message"] == "Insufficient stock quantity. Available: 4"

        response = await client.get(f"/api/v1/items/{item['id']}", headers=admin_headers)
        assert response.json()["data"]["quantity"] == 4
        response = await client.get(f"/api/v1/items/{item['id']}/transactions", headers=admin_headers)
        assert response.json()["count"] == 1

    async def test_unknown_item(self, client: AsyncClient, admin_headers):
        response = await client.post(
            "/api/v1/transactions/",
            json={"item_id": 404, "type": "in", "quantity": 1},
            headers=admin_headers,
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND

    async def test_zero_quantity_rejected(self, client: AsyncClient, admin_headers, create_item):
        item = await create_item()
        response = await client.post(
            "/api/v1/transactions/",
            json={"item_id": item["id"], "type": "in", "quantity": 0},
            headers=admin_headers,
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert "Quantity must be at least 1" in response.json()["message"]

    async def test_users_only_see_their_own_transactions(
        self, client: AsyncClient, admin_headers, user_headers, create_item, create_request
    ):
        item = await create_item(quantity=30)
        request = await create_request(item_id=item["id"], quantity=3)
        await client.put(
            f"/api/v1/requests/{request['id']}/approve", headers=admin_headers
        )

        response = await client.get("/api/v1/transactions/", headers=user_headers)
        assert response.json()["count"] == 0

        response = await client.get("/api/v1/transactions/", headers=admin_headers)
        assert response.json()["count"] == 2

        response = await client.get("/api/v1/transactions/", params={"type": "out"}, headers=admin_headers)
        assert [t["quantity"] for t in response.json()["data"]] == [3]

@pytest.mark.asyncio
class TestLedgerReplay:
    """Replaying the log reproduces every balance and the current quantity"""

    async def test_replay_matches_balances(
        self, client: AsyncClient, admin_headers, create_item, create_request, db_session
    ):
        item = await create_item(quantity=50)
        other = await create_item(name="Envelope", quantity=20)

        await client.post(
            "/api/v1/transactions/",
            json={"item_id": item["id"], "type": "in", "quantity": 7},
            headers=admin_headers,
        )
        request = await create_request(lines=[(item["id"], 12), (other["id"], 5)])
        first, second = request["lines"]
        await client.put(f"/api/v1/requests/{request['id']}/items/{first['id']}/approve", headers=admin_headers)
        await client.put(f"/api/v1/requests/{request['id']}/items/{second['id']}/reject", headers=admin_headers)
        await client.put(f"/api/v1/items/{item['id']}", json={"quantity": 40}, headers=admin_headers)
        # Fails and must leave no trace
        await client.post(
            "/api/v1/transactions/",
            json={"item_id": item["id"], "type": "out", "quantity": 1000},
            headers=admin_headers,
        )

        for item_id in (item["id"], other["id"]):
            ledger = await StockTransactionService(db_session).get_item_ledger(item_id)
            running = 0
            for entry in ledger:
                running += entry.quantity if entry.type.value == "in" else -entry.quantity
                assert running >= 0
                assert entry.balance_after == running

            result = await db_session.execute(select(Item.quantity).where(Item.id == item_id))
            assert result.scalar_one() == running

        response = await client.get(f"/api/v1/items/{item['id']}/transactions", headers=admin_headers)
        assert sum(signed(t) for t in response.json()["data"]) == 40
