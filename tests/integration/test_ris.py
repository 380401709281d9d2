import pytest
from io import BytesIO
from datetime import datetime
from httpx import AsyncClient
from fastapi import status
from openpyxl import load_workbook
from ris_app.services.requisition.ris_numbering import ris_day_prefix

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

def open_workbook(response):
    assert response.status_code == status.HTTP_200_OK, response.text
    assert response.headers["content-type"].startswith(XLSX)
    return load_workbook(BytesIO(response.content))

def day_prefix_of(request: dict) -> str:
    return ris_day_prefix(datetime.fromisoformat(request["reviewed_at"]))

@pytest.fixture
def approved_request(client: AsyncClient, admin_headers, create_item, create_request):
    """Factory: a request whose lines are all approved"""
    async def _create(quantity: int = 20, stock: int = 50, headers: dict = None, **fields) -> dict:
        item = await create_item(name=fields.pop("item_name", "Bond Paper A4"), quantity=stock, sku=fields.pop("sku", None))
        request = await create_request(item_id=item["id"], quantity=quantity, headers=headers, **fields)
        response = await client.put(f"/api/v1/requests/{request['id']}/approve", headers=admin_headers)
        assert response.status_code == status.HTTP_200_OK, response.text
        return response.json()["data"]
    return _create

@pytest.mark.asyncio
class TestGenerateRis:
    async def test_generates_filled_form(self, client: AsyncClient, user_headers, approved_request):
        request = await approved_request(sku="BP-A4", purpose="Assessment materials", budget_source="SSP")

        response = await client.post(f"/api/v1/ris/generate/{request['id']}", headers=user_headers)
        sheet = open_workbook(response).worksheets[0]

        ris_number = f"{day_prefix_of(request)}001"
        assert sheet["G8"].value == ris_number
        assert sheet["H7"].value == "SSP"
        assert sheet["A11"].value == "BP-A4"
        assert sheet["B11"].value == "ream"
        assert sheet["C11"].value == "Bond Paper A4"
        assert sheet["D11"].value == 20
        assert sheet["E11"].value == "X"
        assert sheet["F11"].value is None
        assert sheet["G11"].value == 30
        assert sheet["H11"].value == "Issued"
        assert sheet["B23"].value == "Assessment materials"
        assert sheet["C26"].value == "Juan Dela Cruz"
        assert sheet["C27"].value == "Trainer"
        assert sheet["D26"].value == "CHRISTOPHER DC. AQUILO"
        assert response.headers["content-disposition"].startswith(f"attachment; filename=RIS-{ris_number}-")

    async def test_number_is_assigned_once(self, client: AsyncClient, user_headers, admin_headers, approved_request):
        request = await approved_request()

        first = open_workbook(await client.post(f"/api/v1/ris/generate/{request['id']}", headers=user_headers))
        second = open_workbook(await client.post(f"/api/v1/ris/generate/{request['id']}", headers=admin_headers))

        assert first.worksheets[0]["G8"].value == second.worksheets[0]["G8"].value
        response = await client.get(f"/api/v1/requests/{request['id']}", headers=user_headers)
        assert response.json()["data"]["ris_number"] == first.worksheets[0]["G8"].value

    async def test_same_day_numbers_are_sequential(self, client: AsyncClient, admin_headers, approved_request):
        numbers = []
        for index in range(3):
            request = await approved_request(item_name=f"Item {index}")
            response = await client.post(f"/api/v1/ris/generate/{request['id']}", headers=admin_headers)
            numbers.append(open_workbook(response).worksheets[0]["G8"].value)

        prefix = day_prefix_of(request)
        assert numbers == [f"{prefix}001", f"{prefix}002", f"{prefix}003"]

    async def test_shows_balance_recorded_at_issue(
        self, client: AsyncClient, admin_headers, user_headers, approved_request
    ):
        request = await approved_request(quantity=20, stock=50)
        item_id = request["lines"][0]["item_id"]

        # Unrelated restock after the issue
        response = await client.post(
            "/api/v1/transactions/", json={"item_id": item_id, "type": "in", "quantity": 50}, headers=admin_headers
        )
        assert response.json()["data"]["balance_after"] == 80

        for _ in range(2):
            response = await client.post(f"/api/v1/ris/generate/{request['id']}", headers=user_headers)
            assert open_workbook(response).worksheets[0]["G11"].value == 30

    async def test_mixed_lines(self, client: AsyncClient, admin_headers, user_headers, create_item, create_request):
        paper = await create_item(quantity=10, sku="P-1")
        pens = await create_item(name="Ballpen", quantity=7, sku="P-2")
        request = await create_request(lines=[(paper["id"], 4), (pens["id"], 5)])
        first, second = request["lines"]
        await client.put(f"/api/v1/requests/{request['id']}/items/{first['id']}/approve", headers=admin_headers)
        await client.put(
            f"/api/v1/requests/{request['id']}/items/{second['id']}/reject",
            json={"rejection_reason": "Reserved"},
            headers=admin_headers,
        )

        sheet = open_workbook(
            await client.post(f"/api/v1/ris/generate/{request['id']}", headers=user_headers)
        ).worksheets[0]

        assert (sheet["E11"].value, sheet["G11"].value, sheet["H11"].value) == ("X", 6, "Issued")
        assert (sheet["F12"].value, sheet["G12"].value, sheet["H12"].value) == ("X", 7, "Rejected")
        assert sheet["E12"].value is None

    async def test_requires_an_approved_item(self, client: AsyncClient, user_headers, create_item, create_request):
        item = await create_item(quantity=10)
        request = await create_request(item_id=item["id"], quantity=1)

        response = await client.post(f"/api/v1/ris/generate/{request['id']}", headers=user_headers)
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["message"] == "Can only generate RIS for requests with at least one approved item"

    async def test_only_owner_or_admin(self, client: AsyncClient, other_user_headers, approved_request):
        request = await approved_request()

        response = await client.post(f"/api/v1/ris/generate/{request['id']}", headers=other_user_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["message"] == "Not authorized to generate RIS for this request"

    async def test_unknown_request(self, client: AsyncClient, admin_headers):
        response = await client.post("/api/v1/ris/generate/404", headers=admin_headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND

@pytest.mark.asyncio
class TestGenerateRisBatch:
    async def test_two_forms_per_sheet(self, client: AsyncClient, admin_headers, approved_request):
        requests = [await approved_request(item_name=f"Item {index}", quantity=index + 1) for index in range(3)]

        response = await client.post(
            "/api/v1/ris/generate-batch", json={"request_ids": [r["id"] for r in requests]}, headers=admin_headers
        )
        workbook = open_workbook(response)
        prefix = day_prefix_of(requests[0])

        assert workbook.sheetnames == ["RIS Set 1", "RIS Set 2"]
        first, second = workbook.worksheets
        assert first["G8"].value == f"{prefix}001"
        assert first["D11"].value == 1
        assert first["G37"].value == f"{prefix}002"
        assert first["D40"].value == 2
        assert second["G8"].value == f"{prefix}003"
        assert second["D11"].value == 3
        assert second["G37"].value is None
        # Cloned sheet keeps the layout
        assert "B23:H23" in second.merged_cells
        assert second.column_dimensions["C"].width == first.column_dimensions["C"].width
        assert response.headers["content-disposition"].startswith("attachment; filename=RIS-Batch-3requests-")

    async def test_needs_two_requests(self, client: AsyncClient, admin_headers, approved_request):
        request = await approved_request()

        response = await client.post("/api/v1/ris/generate-batch", json={"request_ids": [request["id"]]}, headers=admin_headers)
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["message"] == "Please provide at least 2 request IDs for batch generation"

    async def test_one_unauthorized_request_aborts_batch(
        self, client: AsyncClient, admin_headers, user_headers, other_user_headers, approved_request
    ):
        mine = await approved_request()
        theirs = await approved_request(item_name="Stapler", headers=other_user_headers)

        response = await client.post(
            "/api/v1/ris/generate-batch", json={"request_ids": [mine["id"], theirs["id"]]}, headers=user_headers
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert str(theirs["id"]) in response.json()["message"]

        for request in (mine, theirs):
            response = await client.get(f"/api/v1/requests/{request['id']}", headers=admin_headers)
            assert response.json()["data"]["ris_number"] is None

    async def test_unapproved_request_aborts_batch(
        self, client: AsyncClient, admin_headers, approved_request, create_item, create_request
    ):
        approved = await approved_request()
        item = await create_item(name="Stapler", quantity=5)
        pending = await create_request(item_id=item["id"], quantity=1)

        response = await client.post(
            "/api/v1/ris/generate-batch", json={"request_ids": [approved["id"], pending["id"]]}, headers=admin_headers
        )
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["message"] == f"Request {pending['id']} does not have approved items"

        response = await client.get(f"/api/v1/requests/{approved['id']}", headers=admin_headers)
        assert response.json()["data"]["ris_number"] is None

@pytest.mark.asyncio
class TestCustomRisAndPreview:
    async def test_custom_ris_takes_todays_next_number(self, client: AsyncClient, admin_headers, approved_request):
        payload = {
            "division": "Assessment Center",
            "purpose": "Walk-in issuance",
            "items": [{"stock_no": "X-1", "description": "Marker", "unit": "pc", "quantity": 2}],
            "requested_by": "Ana Reyes",
        }
        response = await client.post("/api/v1/ris/generate-custom", json=payload, headers=admin_headers)
        sheet = open_workbook(response).worksheets[0]

        custom_number = sheet["G8"].value
        assert sheet["B5"].value == "Assessment Center"
        assert sheet["C11"].value == "Marker"
        assert sheet["D11"].value == 2
        assert sheet["E11"].value is None and sheet["F11"].value is None
        assert sheet["C26"].value == "Ana Reyes"
        assert custom_number.endswith("-001")

        request = await approved_request()
        response = await client.post(f"/api/v1/ris/generate/{request['id']}", headers=admin_headers)
        if custom_number.startswith(day_prefix_of(request)):
            assert open_workbook(response).worksheets[0]["G8"].value == f"{day_prefix_of(request)}002"

    async def test_custom_ris_admin_only(self, client: AsyncClient, user_headers):
        response = await client.post("/api/v1/ris/generate-custom", json={"items": []}, headers=user_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN

    async def test_preview_template(self, client: AsyncClient, admin_headers, user_headers):
        response = await client.get("/api/v1/ris/preview-template", headers=admin_headers)
        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert data["sheet_name"] == "RIS"
        cells = {cell["address"]: cell["value"] for cell in data["cells"]}
        assert cells["A1"] == "REQUISITION AND ISSUE SLIP"
        assert cells["D26"] == "CHRISTOPHER DC. AQUILO"

        response = await client.get("/api/v1/ris/preview-template", headers=user_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN
