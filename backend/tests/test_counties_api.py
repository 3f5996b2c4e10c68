"""
County Directory Backend: HTTP API Tests
==========================================

What:  Exercises the routes end to end through the ASGI app.
How:   httpx AsyncClient (see conftest.test_client) against an in-memory
       SQLite database; icons land in the temporary STORAGE_ROOT.

Test Strategy:
    ✅ Response envelopes and status codes per route
    ✅ Error bodies: 400/404 {"message"}, 500 {"success": false, "message"}
    ✅ Multipart create with icon, then the icon is served from /uploads
    ✅ Company expansion on the detail route
    ✅ Request id propagation
"""

import uuid
from unittest.mock import AsyncMock, patch

import pytest

from county_api.exceptions import DatabaseError

pytestmark = pytest.mark.asyncio

MISSING_ID = "00000000-0000-4000-8000-000000000000"


async def _create(client, payload):
    response = await client.post("/api/counties", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestCreateCounty:

    async def test_create_json(self, test_client, county_payload):
        response = await test_client.post("/api/counties", json=county_payload)

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "County created successfully."
        assert body["data"]["name"] == "Harris County"
        assert body["data"]["icon"] is None
        assert body["data"]["companies"] == []
        assert body["data"]["robots"] == {}
        uuid.UUID(body["data"]["_id"])
        assert "createdAt" in body["data"] and "updatedAt" in body["data"]

    async def test_create_multipart_with_icon(self, test_client, county_payload, sample_icon_bytes):
        form = {**county_payload, "robots": '{"index": true}', "companies": "[]"}
        response = await test_client.post(
            "/api/counties",
            data=form,
            files={"icon": ("harris.png", sample_icon_bytes, "image/png")},
        )

        assert response.status_code == 201, response.text
        data = response.json()["data"]
        assert data["icon"].startswith("/uploads/")
        assert data["icon"].endswith(".png")
        assert data["robots"] == {"index": True}

        served = await test_client.get(data["icon"])
        assert served.status_code == 200
        assert served.content == sample_icon_bytes

    async def test_create_multipart_malformed_robots_falls_back(self, test_client, county_payload):
        response = await test_client.post(
            "/api/counties",
            data={**county_payload, "robots": "{not json", "companies": "oops"},
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["robots"] == {}
        assert data["companies"] == []

    @pytest.mark.parametrize("field, value", [("companies", "null"), ("robots", "[1]")])
    async def test_create_rejects_wrongly_shaped_structures(self, test_client, county_payload, field, value):
        response = await test_client.post("/api/counties", data={**county_payload, field: value})

        assert response.status_code == 400
        assert field in response.json()["message"]
        listing = (await test_client.get("/api/counties")).json()
        assert listing["totalCounties"] == 0

    async def test_create_rejects_unsupported_icon(self, test_client, county_payload):
        response = await test_client.post(
            "/api/counties",
            data=county_payload,
            files={"icon": ("tool.exe", b"MZ", "application/octet-stream")},
        )

        assert response.status_code == 400
        assert "not supported" in response.json()["message"]

    async def test_create_rejects_renamed_executable(self, test_client, county_payload):
        response = await test_client.post(
            "/api/counties",
            data=county_payload,
            files={"icon": ("evil.png", b"MZ\x90\x00" + b"\x00" * 60, "image/png")},
        )

        assert response.status_code == 400
        assert "does not match" in response.json()["message"]
        listing = (await test_client.get("/api/counties")).json()
        assert listing["totalCounties"] == 0

    @pytest.mark.parametrize("missing", ["name", "slug", "excerpt"])
    async def test_create_missing_field(self, test_client, county_payload, missing):
        payload = {k: v for k, v in county_payload.items() if k != missing}
        response = await test_client.post("/api/counties", json=payload)

        assert response.status_code == 400
        assert response.json() == {"message": "All fields are required."}

    async def test_create_non_object_json(self, test_client):
        response = await test_client.post("/api/counties", json=["not", "an", "object"])
        assert response.status_code == 400

    async def test_create_duplicate(self, test_client, county_payload):
        await _create(test_client, county_payload)

        response = await test_client.post(
            "/api/counties",
            json={**county_payload, "name": "Other Name"},
        )

        assert response.status_code == 400
        assert response.json() == {"message": "County with that name or slug already exists."}

    async def test_create_keeps_pass_through_fields(self, test_client, county_payload):
        data = await _create(test_client, {**county_payload, "population": 4731145})
        assert data["population"] == 4731145


class TestListCounties:

    async def test_list_envelope(self, test_client, county_payload):
        for i in range(3):
            await _create(test_client, {
                "name": f"County {i}",
                "slug": f"county-{i}",
                "excerpt": "x",
            })

        response = await test_client.get("/api/counties", params={"page": 2, "limit": 2})

        assert response.status_code == 200
        body = response.json()
        assert set(body) == {"success", "message", "currentPage", "totalPages", "totalCounties", "data"}
        assert body["currentPage"] == 2
        assert body["totalPages"] == 2
        assert body["totalCounties"] == 3
        assert len(body["data"]) == 1

    async def test_list_search_and_sort(self, test_client):
        await _create(test_client, {"name": "Travis", "slug": "travis", "excerpt": "Austin"})
        await _create(test_client, {"name": "Bexar", "slug": "bexar", "excerpt": "San Antonio"})
        await _create(test_client, {"name": "Dallas", "slug": "dallas", "excerpt": "Big D"})

        response = await test_client.get(
            "/api/counties",
            params={"search": "a", "sortBy": "name", "sortOrder": "asc"},
        )

        names = [c["name"] for c in response.json()["data"]]
        assert names == ["Bexar", "Dallas", "Travis"]

        response = await test_client.get("/api/counties", params={"search": "AUSTIN"})
        assert [c["name"] for c in response.json()["data"]] == ["Travis"]

    async def test_list_invalid_paging_uses_defaults(self, test_client, county_payload):
        await _create(test_client, county_payload)

        response = await test_client.get("/api/counties", params={"page": "abc", "limit": "0"})

        assert response.status_code == 200
        body = response.json()
        assert body["currentPage"] == 1
        assert body["totalPages"] == 1

    @pytest.mark.parametrize("page", ["2abc", "1.5"])
    async def test_list_partly_numeric_page_uses_default(self, test_client, county_payload, page):
        await _create(test_client, county_payload)

        response = await test_client.get("/api/counties", params={"page": page, "limit": "3x"})

        body = response.json()
        assert body["currentPage"] == 1
        assert len(body["data"]) == 1

    async def test_list_empty(self, test_client):
        body = (await test_client.get("/api/counties")).json()
        assert body["totalCounties"] == 0
        assert body["totalPages"] == 0
        assert body["data"] == []

    async def test_list_all(self, test_client):
        await _create(test_client, {"name": "A", "slug": "a", "excerpt": "first"})
        await _create(test_client, {"name": "B", "slug": "b", "excerpt": "second"})

        response = await test_client.get("/api/counties/all")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert [c["slug"] for c in body["data"]] == ["a", "b"]


class TestGetCounty:

    async def test_get_expands_companies(self, test_client, county_payload, make_company):
        company = await make_company("Acme Roofing")
        unknown = str(uuid.uuid4())
        created = await _create(test_client, {
            **county_payload,
            "companies": [
                {"companyId": str(company.id), "featured": True},
                {"companyId": unknown},
            ],
        })

        response = await test_client.get(f"/api/counties/{created['_id']}")

        assert response.status_code == 200
        companies = response.json()["data"]["companies"]
        assert companies[0]["companyId"] == {"_id": str(company.id), "companyName": "Acme Roofing"}
        assert companies[0]["featured"] is True
        assert companies[1]["companyId"] is None

    async def test_get_not_found(self, test_client):
        response = await test_client.get(f"/api/counties/{MISSING_ID}")

        assert response.status_code == 404
        assert response.json() == {"message": "County not found"}

    async def test_get_malformed_id(self, test_client):
        response = await test_client.get("/api/counties/not-a-uuid")
        assert response.status_code == 422


class TestUpdateCounty:

    async def test_partial_update(self, test_client, county_payload):
        created = await _create(test_client, county_payload)

        response = await test_client.put(
            f"/api/counties/{created['_id']}",
            json={"excerpt": "Home of Houston.", "icon": "/uploads/elsewhere.png"},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["excerpt"] == "Home of Houston."
        assert data["name"] == "Harris County"
        assert data["icon"] is None

    async def test_update_replaces_icon_with_upload(self, test_client, county_payload, sample_icon_bytes):
        created = await _create(test_client, county_payload)

        response = await test_client.put(
            f"/api/counties/{created['_id']}",
            data={"name": "Harris"},
            files={"icon": ("new.png", sample_icon_bytes, "image/png")},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["name"] == "Harris"
        assert data["icon"].startswith("/uploads/")

    async def test_update_conflict(self, test_client, county_payload):
        await _create(test_client, county_payload)
        other = await _create(test_client, {"name": "Dallas", "slug": "dallas", "excerpt": "x"})

        response = await test_client.put(f"/api/counties/{other['_id']}", json={"slug": "harris-county"})

        assert response.status_code == 400
        assert response.json() == {"message": "County with that name or slug already exists."}

    async def test_update_not_found(self, test_client):
        response = await test_client.put(f"/api/counties/{MISSING_ID}", json={"name": "X"})

        assert response.status_code == 404
        assert response.json() == {"message": "County not found"}


class TestDeleteCounty:

    async def test_delete_then_get(self, test_client, county_payload):
        created = await _create(test_client, county_payload)

        response = await test_client.delete(f"/api/counties/{created['_id']}")

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "County deleted successfully"
        assert body["data"]["slug"] == "harris-county"

        again = await test_client.get(f"/api/counties/{created['_id']}")
        assert again.status_code == 404

    async def test_delete_not_found(self, test_client):
        response = await test_client.delete(f"/api/counties/{MISSING_ID}")

        assert response.status_code == 404
        assert response.json() == {"message": "County not found"}


class TestServerErrors:

    async def test_database_error_shape(self, test_client):
        with patch(
            "county_api.routes.counties.county_service.list_all_counties",
            new=AsyncMock(side_effect=DatabaseError(message="connection refused")),
        ):
            response = await test_client.get("/api/counties/all")

        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "connection refused"}

    async def test_unexpected_error_shape(self, test_client):
        with patch(
            "county_api.routes.counties.county_service.list_counties",
            new=AsyncMock(side_effect=RuntimeError("boom")),
        ):
            response = await test_client.get("/api/counties")

        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "boom"}


class TestAmbientRoutes:

    async def test_health(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["storage"] == "writable"
        assert "uptime_seconds" in body

    async def test_request_id_generated(self, test_client):
        response = await test_client.get("/api/counties")
        assert len(response.headers["X-Request-ID"]) == 8

    async def test_request_id_echoed(self, test_client):
        response = await test_client.get("/api/counties", headers={"X-Request-ID": "trace-42"})
        assert response.headers["X-Request-ID"] == "trace-42"

    async def test_missing_upload(self, test_client):
        response = await test_client.get("/uploads/nothing-here.png")
        assert response.status_code == 404
