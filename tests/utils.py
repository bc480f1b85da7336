"""
Helpers shared by the test modules
"""

from datetime import timedelta
from sqlmodel import Session
from typing import Optional

from app.core.auth import create_access_token
from app.core.permissions import RoleName
from app.models.client import Client
from app.models.company import Company
from app.models.lead import Lead
from app.models.tenant import Tenant, TenantPlan
from app.models.user import User
from app.services.seed import get_role
from app.services.tenants import create_company, create_tenant, create_user

TEST_PASSWORD = "secret123"


def auth_headers(user: User, host: Optional[str] = None, expires_delta: Optional[timedelta] = None) -> dict:
    """Bearer header for a user, optionally pinned to a tenant host"""
    headers = {"Authorization": f"Bearer {create_access_token(user.id, user.tenant_id, expires_delta)}"}
    if host:
        headers["host"] = host
    return headers


class Factory:
    """Builds committed tenants, companies, users, clients and leads"""

    def __init__(self, session: Session):
        self.session = session
        self._count = 0

    def _next(self) -> int:
        self._count += 1
        return self._count

    def tenant(self, subdomain: Optional[str] = None, plan: TenantPlan = TenantPlan.PROFESSIONAL, **fields) -> Tenant:
        n = self._next()
        tenant = create_tenant(
            self.session,
            name=fields.pop("name", f"Tenant {n}"),
            subdomain=subdomain or f"tenant{n}",
            email=fields.pop("email", f"owner{n}@example.com"),
            plan=plan,
            **fields,
        )
        self.session.commit()
        self.session.refresh(tenant)
        return tenant

    def company(self, tenant: Tenant, **fields) -> Company:
        n = self._next()
        company = create_company(
            self.session,
            tenant,
            name=fields.pop("name", f"Company {n}"),
            email=fields.pop("email", f"company{n}@example.com"),
            max_users=fields.pop("max_users", 50),
            **fields,
        )
        self.session.commit()
        self.session.refresh(company)
        return company

    def user(
        self,
        company: Optional[Company] = None,
        role: RoleName = RoleName.SALES_REP,
        email: Optional[str] = None,
        is_active: bool = True,
    ) -> User:
        n = self._next()
        tenant = self.session.get(Tenant, company.tenant_id) if company else None
        user = create_user(
            self.session,
            role=get_role(self.session, role),
            email=email or f"user{n}@example.com",
            password=TEST_PASSWORD,
            first_name="Test",
            last_name=f"User{n}",
            tenant=tenant,
            company=company,
            is_active=is_active,
        )
        self.session.commit()
        self.session.refresh(user)
        return user

    def super_admin(self, email: str = "root@example.com") -> User:
        return self.user(None, RoleName.SUPER_ADMIN, email=email)

    def lead(self, company: Company, **fields) -> Lead:
        n = self._next()
        lead = Lead(
            tenant_id=company.tenant_id,
            company_id=company.id,
            first_name=fields.pop("first_name", "Lead"),
            last_name=fields.pop("last_name", f"Number{n}"),
            email=fields.pop("email", f"lead{n}@prospect.com"),
            **fields,
        )
        self.session.add(lead)
        self.session.commit()
        self.session.refresh(lead)
        return lead

    def client(self, company: Company, **fields) -> Client:
        n = self._next()
        client = Client(
            tenant_id=company.tenant_id,
            company_id=company.id,
            first_name=fields.pop("first_name", "Client"),
            last_name=fields.pop("last_name", f"Number{n}"),
            email=fields.pop("email", f"client{n}@customer.com"),
            **fields,
        )
        self.session.add(client)
        self.session.commit()
        self.session.refresh(client)
        return client
