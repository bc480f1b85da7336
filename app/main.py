"""
CRM - Main Application Entry Point
Multi-tenant CRM for companies, clients and sales leads
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from sqlmodel import Session
import structlog

from app.core.config import get_settings
from app.core.database import engine, init_db
from app.core.errors import register_exception_handlers
from app.services.seed import ensure_super_admin, seed_roles
from app.api import (
    auth, users, companies, clients, leads,
    tenant, super_admin, dashboard, roles
)

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = structlog.get_logger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info("Initializing CRM backend", environment=settings.ENVIRONMENT)
    init_db()
    with Session(engine) as session:
        seed_roles(session)
        ensure_super_admin(session, settings.SUPER_ADMIN_EMAIL, settings.SUPER_ADMIN_PASSWORD)

    yield

    # Shutdown
    logger.info("Shutting down CRM backend")


# Create FastAPI application
app = FastAPI(
    title="CRM API",
    description="Multi-tenant CRM with companies, clients, leads and lead conversion",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure middleware stack
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers
api = settings.API_PREFIX
app.include_router(auth.router, prefix=f"{api}/auth", tags=["auth"])
app.include_router(users.router, prefix=f"{api}/users", tags=["users"])
app.include_router(companies.router, prefix=f"{api}/companies", tags=["companies"])
app.include_router(clients.router, prefix=f"{api}/clients", tags=["clients"])
app.include_router(leads.router, prefix=f"{api}/leads", tags=["leads"])
app.include_router(tenant.router, prefix=f"{api}/tenant", tags=["tenant"])
app.include_router(super_admin.router, prefix=f"{api}/super-admin", tags=["super-admin"])
app.include_router(dashboard.router, prefix=f"{api}/dashboard", tags=["dashboard"])
app.include_router(roles.router, prefix=f"{api}/roles", tags=["roles"])


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "crm-api", "environment": settings.ENVIRONMENT}


@app.get("/")
def root():
    """Root endpoint"""
    return {
        "message": "CRM API",
        "version": "1.0.0",
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.ENVIRONMENT == "development",
        log_level="info",
    )
