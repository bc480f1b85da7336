"""
Integration tests for the current-tenant and companies APIs
"""

import pytest

from tests.utils import auth_headers


@pytest.mark.asyncio
async def test_tenant_info(client, org):
    response = await client.get("/api/tenant/info", headers=auth_headers(org["viewer"], "acme.mycrm.com"))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["subdomain"] == "acme"
    assert data["plan"] == "professional"
    assert data["max_users"] == 50


@pytest.mark.asyncio
async def test_update_settings_needs_manage_settings(client, org):
    denied = await client.put("/api/tenant/settings", json={"name": "Nope"}, headers=auth_headers(org["manager"]))
    assert denied.status_code == 403

    response = await client.put(
        "/api/tenant/settings",
        json={"name": "Acme Corp", "settings": {"timezone": "Europe/Paris", "currency": "EUR"}},
        headers=auth_headers(org["admin"]),
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["name"] == "Acme Corp"
    assert data["settings"]["timezone"] == "Europe/Paris"
    assert data["settings"]["currency"] == "EUR"


@pytest.mark.asyncio
async def test_update_settings_rejects_plan_fields(client, org):
    response = await client.put(
        "/api/tenant/settings", json={"plan": "enterprise", "max_users": 999}, headers=auth_headers(org["admin"])
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_usage(client, factory, org):
    factory.user(org["company"], is_active=False)

    response = await client.get("/api/tenant/usage", headers=auth_headers(org["viewer"]))

    usage = response.json()["data"]
    assert usage["limits"]["max_users"] == 50
    assert usage["usage"]["users"]["total"] == 5
    assert usage["usage"]["users"]["active"] == 4
    assert usage["usage"]["users"]["inactive"] == 1
    assert usage["usage"]["users"]["remaining"] == 46
    assert usage["subscription"]["plan"] == "professional"


@pytest.mark.asyncio
async def test_check_limit(client, org):
    headers = auth_headers(org["admin"])

    ok = await client.post("/api/tenant/check-limit", json={"action": "add_user", "quantity": 46}, headers=headers)
    assert ok.json()["data"] == {
        "can_perform": True,
        "message": "User can be added",
        "limit": 50,
        "current": 4,
        "remaining": 46,
    }

    too_many = await client.post("/api/tenant/check-limit", json={"action": "add_user", "quantity": 47}, headers=headers)
    assert too_many.json()["data"]["can_perform"] is False

    storage = await client.post("/api/tenant/check-limit", json={"action": "add_storage", "quantity": 10}, headers=headers)
    assert storage.json()["data"]["can_perform"] is True


@pytest.mark.asyncio
async def test_check_limit_unknown_action(client, org):
    response = await client.post(
        "/api/tenant/check-limit", json={"action": "add_planet"}, headers=auth_headers(org["admin"])
    )
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "action"


@pytest.mark.asyncio
async def test_companies_scoped_to_own(client, factory, org):
    factory.company(org["tenant"])

    listing = await client.get("/api/companies", headers=auth_headers(org["viewer"]))
    assert [c["id"] for c in listing.json()["data"]] == [str(org["company"].id)]


@pytest.mark.asyncio
async def test_company_admin_updates_company_but_not_active_flag(client, org):
    response = await client.put(
        f"/api/companies/{org['company'].id}",
        json={"name": "Renamed Co", "is_active": False},
        headers=auth_headers(org["admin"]),
    )
    data = response.json()["data"]
    assert data["name"] == "Renamed Co"
    assert data["is_active"] is True


@pytest.mark.asyncio
async def test_only_super_admin_creates_companies(client, factory, org):
    payload = {"tenant_id": str(org["tenant"].id), "name": "Branch", "email": "branch@acme.com", "max_users": 20}

    denied = await client.post("/api/companies", json=payload, headers=auth_headers(org["admin"]))
    assert denied.status_code == 403

    created = await client.post("/api/companies", json=payload, headers=auth_headers(factory.super_admin()))
    assert created.status_code == 201
    data = created.json()["data"]
    assert data["tenant_id"] == str(org["tenant"].id)
    # 20 seats at 10/seat with the 10% volume discount
    assert data["monthly_price"] == 180


@pytest.mark.asyncio
async def test_company_delete_refused_with_active_users(client, factory, org):
    root = factory.super_admin()
    response = await client.delete(f"/api/companies/{org['company'].id}", headers=auth_headers(root))
    assert response.status_code == 400
    assert "active users" in response.json()["message"]

    empty = factory.company(org["tenant"])
    response = await client.delete(f"/api/companies/{empty.id}", headers=auth_headers(root))
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_company_stats(client, factory, org):
    factory.client(org["company"])
    factory.lead(org["company"], converted_to_client=True)
    factory.lead(org["company"])

    response = await client.get(f"/api/companies/{org['company'].id}/stats", headers=auth_headers(org["viewer"]))

    stats = response.json()["data"]
    assert stats["users"] == {"total": 4, "active": 4, "inactive": 0}
    assert stats["clients"]["total"] == 1
    assert stats["leads"] == {"total": 2, "open": 2, "converted": 1}


@pytest.mark.asyncio
async def test_company_plan_change(client, factory, org):
    root = factory.super_admin()
    url = f"/api/companies/{org['company'].id}/plan"

    too_small = await client.put(url, json={"plan": "professional", "max_users": 2}, headers=auth_headers(root))
    assert too_small.status_code == 400

    response = await client.put(url, json={"plan": "professional", "max_users": 10}, headers=auth_headers(root))
    assert response.json()["data"]["monthly_price"] == 250


@pytest.mark.asyncio
async def test_inactive_company_locks_out_users(client, db, org):
    company = org["company"]
    company.is_active = False
    db.add(company)
    db.commit()

    response = await client.get("/api/auth/me", headers=auth_headers(org["rep"]))
    assert response.status_code == 401
    assert response.json()["message"] == "Company account is inactive"


@pytest.mark.asyncio
async def test_sales_rep_reads_own_company(client, org):
    response = await client.get(f"/api/companies/{org['company'].id}", headers=auth_headers(org["rep"]))
    assert response.status_code == 200
