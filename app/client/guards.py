"""
Route guards for client navigation

Mirrors the server's permission gate and tenant policy so a front end can
decide before calling the API. The server stays authoritative.
"""

from enum import Enum
from typing import Optional

from app.client.session import ClientSession
from app.core.config import get_settings
from app.core.permissions import Requirement
from app.core.tenant_resolver import extract_subdomain, is_local_host


class GuardDecision(str, Enum):
    ALLOW = "allow"
    LOGIN = "login"
    DENIED = "denied"
    TENANT_MISSING = "tenant_missing"


def guard_route(session: ClientSession, requirement: Requirement, host: Optional[str]) -> GuardDecision:
    if not session.is_authenticated:
        return GuardDecision.LOGIN

    if not session.is_super_admin:
        subdomain = extract_subdomain(host)
        if subdomain is None and not (get_settings().ALLOW_LOCAL_TENANTLESS and is_local_host(host)):
            return GuardDecision.TENANT_MISSING
        if subdomain is not None and session.tenant and session.tenant.get("subdomain") != subdomain:
            return GuardDecision.DENIED

    if requirement.super_admin and not session.is_super_admin:
        return GuardDecision.DENIED
    if requirement.permission is not None and not session.has_permission(requirement.permission):
        return GuardDecision.DENIED
    return GuardDecision.ALLOW
