"""
Tests for session tokens, login and registration
"""

import pytest
from datetime import datetime, timedelta
import uuid
from jose import jwt

from app.core.auth import create_access_token, decode_access_token, hash_password, verify_password, verify_token
from app.core.config import get_settings
from app.core.errors import SessionExpired, SessionInvalid
from app.core.permissions import RoleName
from app.models.tenant import TenantPlan, TenantStatus
from app.models.user import User
from app.services.seed import get_role

from tests.utils import TEST_PASSWORD, auth_headers

settings = get_settings()


def test_create_access_token():
    """Test JWT token creation carries only identifiers"""
    user_id = uuid.uuid4()
    tenant_id = uuid.uuid4()

    token = create_access_token(user_id=user_id, tenant_id=tenant_id, expires_delta=timedelta(hours=24))

    payload = decode_access_token(token)
    assert payload["sub"] == str(user_id)
    assert payload["tenant_id"] == str(tenant_id)
    assert "exp" in payload
    assert "role" not in payload
    assert "permissions" not in payload


def test_verify_token_returns_user_id():
    user_id = uuid.uuid4()
    assert verify_token(create_access_token(user_id)) == user_id


def test_verify_invalid_token():
    """Test token verification with invalid token"""
    with pytest.raises(SessionInvalid):
        verify_token("invalid.token.string.here")


def test_expired_token():
    """Test that expired tokens are rejected as expired, not invalid"""
    token = create_access_token(uuid.uuid4(), expires_delta=timedelta(hours=-1))

    with pytest.raises(SessionExpired):
        verify_token(token)


def test_token_with_wrong_secret():
    token = jwt.encode(
        {"sub": str(uuid.uuid4()), "exp": datetime.utcnow() + timedelta(hours=1)},
        "wrong-secret",
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(SessionInvalid):
        verify_token(token)


def test_token_with_non_uuid_subject():
    token = jwt.encode(
        {"sub": "not-a-uuid", "exp": datetime.utcnow() + timedelta(hours=1)},
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(SessionInvalid):
        verify_token(token)


def test_password_hashing():
    hashed = hash_password("hunter22")
    assert hashed != "hunter22"
    assert verify_password("hunter22", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("hunter22", None)


@pytest.mark.asyncio
async def test_login_success(client, org):
    """Test login on the tenant host returns token and user"""
    user = org["rep"]
    response = await client.post(
        "/api/auth/login",
        json={"email": user.email, "password": TEST_PASSWORD},
        headers={"host": "acme.mycrm.com"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["token"]
    assert body["user"]["id"] == str(user.id)
    assert body["user"]["role"] == RoleName.SALES_REP.value
    assert "create_leads" in body["user"]["permissions"]
    assert verify_token(body["token"]) == user.id


@pytest.mark.asyncio
async def test_login_email_is_case_insensitive(client, org):
    response = await client.post(
        "/api/auth/login",
        json={"email": org["rep"].email.upper(), "password": TEST_PASSWORD},
        headers={"host": "acme.mycrm.com"},
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_login_wrong_password(client, org):
    response = await client.post(
        "/api/auth/login",
        json={"email": org["rep"].email, "password": "nope-nope"},
        headers={"host": "acme.mycrm.com"},
    )

    assert response.status_code == 401
    assert response.json() == {
        "success": False,
        "code": "INVALID_CREDENTIALS",
        "message": "Invalid email or password",
    }


@pytest.mark.asyncio
async def test_login_unknown_email_looks_like_wrong_password(client, org):
    response = await client.post(
        "/api/auth/login",
        json={"email": "ghost@example.com", "password": TEST_PASSWORD},
        headers={"host": "acme.mycrm.com"},
    )
    assert response.status_code == 401
    assert response.json()["code"] == "INVALID_CREDENTIALS"


@pytest.mark.asyncio
async def test_login_inactive_user(client, factory, org):
    user = factory.user(org["company"], RoleName.SALES_REP, is_active=False)
    response = await client.post(
        "/api/auth/login",
        json={"email": user.email, "password": TEST_PASSWORD},
        headers={"host": "acme.mycrm.com"},
    )
    assert response.status_code == 401
    assert response.json()["code"] == "ACCOUNT_INACTIVE"


@pytest.mark.asyncio
async def test_login_user_of_other_tenant_fails(client, factory, org):
    other = factory.tenant("globex")
    outsider = factory.user(factory.company(other), RoleName.SALES_REP)

    response = await client.post(
        "/api/auth/login",
        json={"email": outsider.email, "password": TEST_PASSWORD},
        headers={"host": "acme.mycrm.com"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_unknown_subdomain_host(client, org):
    response = await client.post(
        "/api/auth/login",
        json={"email": org["rep"].email, "password": TEST_PASSWORD},
        headers={"host": "nosuch.mycrm.com"},
    )
    assert response.status_code == 404
    assert response.json()["code"] == "TENANT_NOT_FOUND"


@pytest.mark.asyncio
async def test_login_with_subdomain_field_on_local_host(client, org):
    response = await client.post(
        "/api/auth/login",
        json={"email": org["rep"].email, "password": TEST_PASSWORD, "subdomain": "acme"},
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_login_suspended_tenant(client, db, org):
    tenant = org["tenant"]
    tenant.status = TenantStatus.SUSPENDED
    db.add(tenant)
    db.commit()

    response = await client.post(
        "/api/auth/login",
        json={"email": org["rep"].email, "password": TEST_PASSWORD},
        headers={"host": "acme.mycrm.com"},
    )
    assert response.status_code == 403
    assert response.json()["code"] == "TENANT_INACTIVE"


@pytest.mark.asyncio
async def test_login_super_admin_without_tenant(client, factory):
    admin = factory.super_admin()
    response = await client.post(
        "/api/auth/login",
        json={"email": admin.email, "password": TEST_PASSWORD},
    )
    assert response.status_code == 200
    assert response.json()["user"]["tenant_id"] is None


@pytest.mark.asyncio
async def test_register_creates_tenant_company_and_admin(client, db):
    response = await client.post("/api/auth/register", json={
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email": "Ada@Example.com",
        "password": "secret123",
        "tenant_name": "Analytical Engines",
        "subdomain": "Engines",
    })

    assert response.status_code == 201
    body = response.json()
    assert body["user"]["email"] == "ada@example.com"
    assert body["user"]["role"] == RoleName.COMPANY_ADMIN.value
    assert body["user"]["tenant_id"] is not None
    assert body["user"]["company_id"] is not None

    info = await client.get("/api/tenant/info", headers={"Authorization": f"Bearer {body['token']}"})
    assert info.status_code == 200
    tenant = info.json()["data"]
    assert tenant["subdomain"] == "engines"
    assert tenant["plan"] == TenantPlan.TRIAL.value
    assert tenant["current_users"] == 1


@pytest.mark.asyncio
async def test_register_duplicate_subdomain(client, org):
    response = await client.post("/api/auth/register", json={
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email": "ada@example.com",
        "password": "secret123",
        "tenant_name": "Copycat",
        "subdomain": "acme",
    })
    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert body["errors"][0]["field"] == "subdomain"


@pytest.mark.asyncio
async def test_register_validation_errors_list_fields(client, db):
    response = await client.post("/api/auth/register", json={"email": "not-an-email"})
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    fields = {error["field"] for error in body["errors"]}
    assert {"email", "password", "first_name"} <= fields


@pytest.mark.asyncio
async def test_me_reflects_current_role(client, db, org):
    """Role changes apply to existing tokens on the next request"""
    user = org["rep"]
    headers = auth_headers(user)

    first = await client.get("/api/auth/me", headers=headers)
    assert first.json()["data"]["role"] == RoleName.SALES_REP.value

    user.role_id = get_role(db, RoleName.MANAGER).id
    db.add(user)
    db.commit()

    second = await client.get("/api/auth/me", headers=headers)
    assert second.json()["data"]["role"] == RoleName.MANAGER.value


@pytest.mark.asyncio
async def test_deactivated_user_token_stops_working(client, db, org):
    user = org["rep"]
    headers = auth_headers(user)
    user.is_active = False
    db.add(user)
    db.commit()

    response = await client.get("/api/auth/me", headers=headers)
    assert response.status_code == 401
    assert response.json()["code"] == "ACCOUNT_INACTIVE"


@pytest.mark.asyncio
async def test_missing_and_expired_tokens(client, org):
    missing = await client.get("/api/auth/me")
    assert missing.status_code == 401
    assert missing.json()["code"] == "SESSION_INVALID"

    expired = await client.get("/api/auth/me", headers=auth_headers(org["rep"], expires_delta=timedelta(seconds=-5)))
    assert expired.status_code == 401
    assert expired.json()["code"] == "SESSION_EXPIRED"


@pytest.mark.asyncio
async def test_token_for_deleted_user(client, db):
    token = create_access_token(uuid.uuid4())
    response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json()["code"] == "SESSION_INVALID"


@pytest.mark.asyncio
async def test_change_password(client, db, org):
    user = org["rep"]
    wrong = await client.put(
        "/api/auth/change-password",
        json={"current_password": "bad-guess", "new_password": "newsecret"},
        headers=auth_headers(user),
    )
    assert wrong.status_code == 401
    assert wrong.json()["message"] == "Current password is incorrect"

    ok = await client.put(
        "/api/auth/change-password",
        json={"current_password": TEST_PASSWORD, "new_password": "newsecret"},
        headers=auth_headers(user),
    )
    assert ok.status_code == 200
    db.expire_all()
    assert verify_password("newsecret", db.get(User, user.id).password_hash)


@pytest.mark.asyncio
async def test_update_profile(client, org):
    response = await client.put(
        "/api/auth/profile",
        json={"first_name": "Renamed"},
        headers=auth_headers(org["rep"]),
    )
    assert response.status_code == 200
    assert response.json()["data"]["first_name"] == "Renamed"


@pytest.mark.asyncio
async def test_logout(client, org):
    response = await client.post("/api/auth/logout", headers=auth_headers(org["rep"]))
    assert response.status_code == 200
    assert response.json() == {"success": True, "data": None, "message": "Logged out successfully"}
