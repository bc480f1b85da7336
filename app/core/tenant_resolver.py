"""
Tenant resolution from the request host

The host name is the only authoritative source of tenant identity. The
X-Tenant-Subdomain header sent by clients is a hint: it is compared with
the derived subdomain for logging and otherwise ignored.
"""

from fastapi import Depends, Request
from sqlmodel import Session, select
from typing import Optional, TYPE_CHECKING
import ipaddress
import structlog

from app.core.config import get_settings
from app.core.database import get_session
from app.core.errors import Forbidden, TenantInactive, TenantNotFound, TenantRequired
from app.models.tenant import Tenant, TenantStatus

if TYPE_CHECKING:
    from app.models.user import User

logger = structlog.get_logger(__name__)
settings = get_settings()

LOCAL_HOSTS = {"localhost", "127.0.0.1"}


def _hostname(host: Optional[str]) -> str:
    host = (host or "").strip().lower()
    if host.startswith("["):
        # Bracketed IPv6 literal, optionally with a port
        return host[1:host.find("]")] if "]" in host else host
    return host.split(":", 1)[0].rstrip(".")


def _is_ipv4(hostname: str) -> bool:
    try:
        return isinstance(ipaddress.ip_address(hostname), ipaddress.IPv4Address)
    except ValueError:
        return False


def is_local_host(host: Optional[str]) -> bool:
    """True for localhost, 127.0.0.1 and bare IPv4 literals"""
    hostname = _hostname(host)
    return hostname in LOCAL_HOSTS or _is_ipv4(hostname)


def extract_subdomain(host: Optional[str]) -> Optional[str]:
    """Derive the tenant subdomain candidate from a host name

    The configured base domain and its www alias never name a tenant.
    """
    hostname = _hostname(host)
    if not hostname or is_local_host(hostname):
        return None

    base = settings.BASE_DOMAIN.strip().lower().rstrip(".")
    if hostname in (base, f"www.{base}"):
        return None

    parts = hostname.split(".")
    if len(parts) > 2 and parts[0] != "www" and parts[0]:
        return parts[0]
    return None


def find_tenant_by_subdomain(session: Session, subdomain: str) -> Tenant:
    tenant = session.exec(
        select(Tenant).where(Tenant.subdomain == subdomain.lower())
    ).first()
    if not tenant:
        raise TenantNotFound()
    return tenant


def resolve_tenant(session: Session, host: Optional[str]) -> Optional[Tenant]:
    """Map a host name to its Tenant, or None when the host names no tenant"""
    subdomain = extract_subdomain(host)
    if subdomain is None:
        return None
    return find_tenant_by_subdomain(session, subdomain)


def ensure_tenant_usable(tenant: Tenant):
    if tenant.status != TenantStatus.ACTIVE:
        raise TenantInactive(f"Tenant account is {tenant.status.value}")
    if not tenant.is_usable():
        raise TenantInactive("Trial period has expired. Please upgrade your plan.")


def enforce_tenant_policy(tenant: Optional[Tenant], user: "User", is_super_admin: bool, host: Optional[str]):
    """Check that a caller may act within the resolved tenant.

    Tenant-less requests from local hosts are a development convenience
    governed by ALLOW_LOCAL_TENANTLESS, not a security boundary.
    """
    if is_super_admin:
        return

    if tenant is None:
        if not (settings.ALLOW_LOCAL_TENANTLESS and is_local_host(host)):
            raise TenantRequired()
        return

    if user.tenant_id != tenant.id:
        logger.warning(
            "User does not belong to request tenant",
            user_id=str(user.id),
            tenant_id=str(tenant.id),
        )
        raise Forbidden()


def get_request_tenant(
    request: Request,
    session: Session = Depends(get_session)
) -> Optional[Tenant]:
    """Dependency resolving the tenant for the current request host"""
    host = request.headers.get("host", "")
    tenant = resolve_tenant(session, host)

    hinted = request.headers.get(settings.TENANT_HEADER)
    derived = tenant.subdomain if tenant else None
    if hinted and hinted.lower() != derived:
        logger.warning("Ignoring tenant header that disagrees with host", host=host, header=hinted)

    request.state.tenant = tenant
    return tenant
