"""
Integration tests for the super-admin API
"""

import pytest

from app.models.tenant import TenantPlan, TenantStatus

from tests.utils import auth_headers


@pytest.fixture
def root(factory):
    return factory.super_admin()


@pytest.mark.asyncio
async def test_non_super_admin_is_refused(client, org):
    for path in ("/api/super-admin/dashboard", "/api/super-admin/tenants"):
        response = await client.get(path, headers=auth_headers(org["admin"]))
        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN"


@pytest.mark.asyncio
async def test_dashboard_overview(client, factory, org, root):
    factory.tenant("trialco", plan=TenantPlan.TRIAL)
    factory.lead(org["company"])
    factory.client(org["company"])

    response = await client.get("/api/super-admin/dashboard", headers=auth_headers(root))

    assert response.status_code == 200
    data = response.json()["data"]
    overview = data["overview"]
    assert overview["total_tenants"] == 2
    assert overview["active_tenants"] == 2
    assert overview["trial_tenants"] == 1
    assert overview["total_users"] == 5
    assert overview["total_leads"] == 1
    assert overview["total_clients"] == 1
    # Only the paying tenant: 50 seats at 35 with the 15% discount
    assert overview["monthly_revenue"] == 1487.5
    assert data["plan_distribution"]["trial"] == 1
    assert data["plan_distribution"]["professional"] == 1
    assert data["recent_tenants"][0]["subdomain"] == "trialco"


@pytest.mark.asyncio
async def test_list_tenants_with_filters(client, factory, root):
    factory.tenant("alpha", name="Alpha Labs")
    factory.tenant("beta", plan=TenantPlan.STARTER)
    headers = auth_headers(root)

    everyone = await client.get("/api/super-admin/tenants", headers=headers)
    assert everyone.json()["total"] == 2

    starter = await client.get("/api/super-admin/tenants", params={"plan": "starter"}, headers=headers)
    assert [t["subdomain"] for t in starter.json()["data"]] == ["beta"]

    found = await client.get("/api/super-admin/tenants", params={"search": "alpha"}, headers=headers)
    assert found.json()["total"] == 1


@pytest.mark.asyncio
async def test_create_tenant_with_admin(client, root):
    response = await client.post(
        "/api/super-admin/tenants",
        json={
            "name": "Initech",
            "subdomain": "Initech",
            "email": "OPS@initech.com",
            "company_name": "Initech HQ",
            "admin_user": {
                "first_name": "Bill",
                "last_name": "Lumbergh",
                "email": "bill@initech.com",
                "password": "tpsreport",
            },
        },
        headers=auth_headers(root),
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["subdomain"] == "initech"
    assert data["email"] == "ops@initech.com"
    assert data["plan"] == "trial"
    assert data["max_users"] == 5
    assert data["current_users"] == 1
    assert data["stats"] == {"companies": 1, "users": 1, "active_users": 1, "clients": 0, "leads": 0}

    login = await client.post(
        "/api/auth/login",
        json={"email": "bill@initech.com", "password": "tpsreport"},
        headers={"host": "initech.mycrm.com"},
    )
    assert login.status_code == 200
    assert login.json()["user"]["role"] == "company_admin"


@pytest.mark.asyncio
async def test_create_tenant_rejects_taken_subdomain(client, factory, root):
    factory.tenant("taken")

    response = await client.post(
        "/api/super-admin/tenants",
        json={"name": "Again", "subdomain": "taken", "email": "again@example.com"},
        headers=auth_headers(root),
    )
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "subdomain"


@pytest.mark.asyncio
async def test_get_tenant_detail(client, factory, org, root):
    factory.lead(org["company"])

    response = await client.get(f"/api/super-admin/tenants/{org['tenant'].id}", headers=auth_headers(root))

    stats = response.json()["data"]["stats"]
    assert stats["companies"] == 1
    assert stats["users"] == 4
    assert stats["leads"] == 1

    missing = await client.get(f"/api/super-admin/tenants/{org['company'].id}", headers=auth_headers(root))
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_plan_change_applies_limits(client, factory, root):
    tenant = factory.tenant("grower", plan=TenantPlan.TRIAL)

    response = await client.put(
        f"/api/super-admin/tenants/{tenant.id}", json={"plan": "starter"}, headers=auth_headers(root)
    )

    data = response.json()["data"]
    assert data["plan"] == "starter"
    assert data["max_users"] == 10
    assert data["features"]["integrations"] is True
    assert data["monthly_price"] == 150


@pytest.mark.asyncio
async def test_delete_cancels_tenant(client, db, org, root):
    response = await client.delete(f"/api/super-admin/tenants/{org['tenant'].id}", headers=auth_headers(root))

    assert response.status_code == 200
    assert response.json()["data"]["status"] == TenantStatus.CANCELLED.value

    locked_out = await client.get("/api/auth/me", headers=auth_headers(org["viewer"]))
    assert locked_out.status_code == 403
    assert locked_out.json()["code"] == "TENANT_INACTIVE"


@pytest.mark.asyncio
async def test_suspend_and_activate(client, org, root):
    headers = auth_headers(root)
    tenant_id = org["tenant"].id

    suspended = await client.put(f"/api/super-admin/tenants/{tenant_id}/suspend", headers=headers)
    assert suspended.json()["data"]["status"] == "suspended"

    blocked = await client.get("/api/leads", headers=auth_headers(org["rep"], "acme.mycrm.com"))
    assert blocked.status_code == 403
    assert blocked.json()["message"] == "Tenant account is suspended"

    activated = await client.put(f"/api/super-admin/tenants/{tenant_id}/activate", headers=headers)
    assert activated.json()["data"]["status"] == "active"

    allowed = await client.get("/api/leads", headers=auth_headers(org["rep"], "acme.mycrm.com"))
    assert allowed.status_code == 200
