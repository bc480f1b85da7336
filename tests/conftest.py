"""
Test configuration for pytest
"""

import os

# Test environment variables, set before the app reads its settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret"
os.environ["ALLOW_LOCAL_TENANTLESS"] = "true"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine
from typing import Generator

from app.core.database import get_session, init_db
from app.core.permissions import RoleName
from app.main import app
from app.services.seed import seed_roles

from tests.utils import Factory

# One shared in-memory connection so the app and the fixtures see the same data
test_engine = create_engine(
    "sqlite://",
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a clean database session with seeded roles for each test"""
    init_db(test_engine)

    with Session(test_engine) as session:
        seed_roles(session)
        yield session

    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture
def override_session(db: Session):
    """Route the app's session dependency to the test engine"""
    def _get_test_session():
        with Session(test_engine) as session:
            yield session

    app.dependency_overrides[get_session] = _get_test_session
    yield
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(override_session):
    """HTTP client against the app on a local host (no tenant in the host)"""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://localhost") as ac:
        yield ac


@pytest.fixture
def factory(db: Session) -> Factory:
    return Factory(db)


@pytest.fixture
def org(factory: Factory):
    """A tenant with one company and a user per company role"""
    tenant = factory.tenant("acme")
    company = factory.company(tenant)
    return {
        "tenant": tenant,
        "company": company,
        "admin": factory.user(company, RoleName.COMPANY_ADMIN),
        "manager": factory.user(company, RoleName.MANAGER),
        "rep": factory.user(company, RoleName.SALES_REP),
        "viewer": factory.user(company, RoleName.USER),
    }
