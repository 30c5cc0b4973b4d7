"""
API tests for Companies and Plans endpoints.

Covers authentication, admin enforcement and the response envelopes.
"""

import pytest

from tests.support.factories import create_company, create_plan

pytestmark = [pytest.mark.api, pytest.mark.asyncio]


class TestCompaniesAuth:
    """Tests for bearer authentication on /api/v1/companies."""

    async def test_missing_token(self, async_client):
        response = await async_client.get("/api/v1/companies")

        assert response.status_code == 401
        assert response.json()["code"] == "auth.missing_token"

    async def test_invalid_token(self, async_client):
        response = await async_client.get("/api/v1/companies", headers={"Authorization": "Bearer nope"})

        assert response.status_code == 401
        assert response.json()["code"] == "auth.invalid_token"


class TestCompaniesEndpoints:
    """Tests for /api/v1/companies."""

    async def test_create_and_fetch(self, async_client, user_headers):
        created = await async_client.post(
            "/api/v1/companies",
            json={"name": "Acme GmbH", "airwallex_account_id": "acct_1"},
            headers=user_headers,
        )

        assert created.status_code == 201
        body = created.json()
        assert body["success"] is True
        assert body["message"] == "Company created successfully"
        company_id = body["data"]["id"]

        fetched = await async_client.get(f"/api/v1/companies/{company_id}", headers=user_headers)
        assert fetched.json()["data"]["airwallex_account_id"] == "acct_1"

    async def test_duplicate_name(self, async_client, user_headers, db_session):
        await create_company(db_session, "Acme GmbH")

        response = await async_client.post("/api/v1/companies", json={"name": "Acme GmbH"}, headers=user_headers)

        assert response.status_code == 409
        assert response.json()["code"] == "company.name_conflict"

    async def test_not_found(self, async_client, user_headers):
        response = await async_client.get("/api/v1/companies/999", headers=user_headers)

        assert response.status_code == 404
        body = response.json()
        assert body["detail"] == "Company with ID 999 not found"
        assert body["code"] == "resource.not_found"
        assert body["request_id"] == response.headers["X-Request-ID"]

    async def test_paginated_meta(self, async_client, user_headers, db_session):
        for index in range(3):
            await create_company(db_session, f"Company {index}", airwallex_account_id=f"acct_{index}")

        response = await async_client.get("/api/v1/companies/paginated?page=2&limit=2", headers=user_headers)

        body = response.json()
        assert len(body["data"]) == 1
        assert body["meta"] == {"totalItems": 3, "itemsPerPage": 2, "totalPages": 2, "currentPage": 2}

    async def test_validation_error(self, async_client, user_headers):
        response = await async_client.post("/api/v1/companies", json={"name": ""}, headers=user_headers)

        assert response.status_code == 422
        assert response.json()["code"] == "http.validation_error"


class TestPlansEndpoints:
    """Tests for /api/v1/plans."""

    async def test_user_cannot_create_plan(self, async_client, user_headers):
        response = await async_client.post(
            "/api/v1/plans",
            json={"name": "Platinum", "level": 4, "monthly_price": 10, "annual_price": 100},
            headers=user_headers,
        )

        assert response.status_code == 403
        assert response.json()["code"] == "auth.insufficient_role"

    async def test_admin_seeds_plans(self, async_client, admin_headers):
        response = await async_client.post("/api/v1/plans/seed", headers=admin_headers)

        assert response.status_code == 200
        assert sorted(response.json()["data"]["created"]) == ["Bronze", "Gold", "Silver"]

        active = await async_client.get("/api/v1/plans/active", headers=admin_headers)
        assert [plan["name"] for plan in active.json()] == ["Bronze", "Silver", "Gold"]

    async def test_assign_plan_to_company(self, async_client, admin_headers, db_session):
        plan = await create_plan(db_session)
        company = await create_company(db_session)

        response = await async_client.post(
            f"/api/v1/plans/companies/{company.id}/plan",
            json={"plan_id": plan.id},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["data"]["plan_id"] == plan.id

    async def test_user_can_read_plans(self, async_client, user_headers, db_session):
        plan = await create_plan(db_session)

        response = await async_client.get(f"/api/v1/plans/{plan.id}", headers=user_headers)

        assert response.json()["data"]["name"] == "Bronze"
