"""
Application configuration using Pydantic Settings
"""

from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "CRM"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    PORT: int = 5002

    # API
    API_PREFIX: str = "/api"
    ALLOWED_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:3001",
    ]

    # Database
    DATABASE_URL: str = "sqlite:///./crm.db"

    # JWT
    JWT_SECRET_KEY: str = "jwt-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7  # 7 days

    # Tenant
    TENANT_HEADER: str = "X-Tenant-Subdomain"
    BASE_DOMAIN: str = "mycrm.com"
    # Requests on localhost may run without a resolved tenant
    ALLOW_LOCAL_TENANTLESS: bool = True
    TRIAL_DAYS: int = 14

    # Pagination
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    # Bootstrap super admin (created on startup when both are set)
    SUPER_ADMIN_EMAIL: Optional[str] = None
    SUPER_ADMIN_PASSWORD: Optional[str] = None

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
