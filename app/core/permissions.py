"""
RBAC (Role-Based Access Control) permission system
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Set, TYPE_CHECKING

from app.core.errors import Forbidden

if TYPE_CHECKING:
    from app.core.dependencies import AuthContext


class RoleName(str, Enum):
    """System role names"""
    SUPER_ADMIN = "super_admin"
    COMPANY_ADMIN = "company_admin"
    MANAGER = "manager"
    SALES_REP = "sales_rep"
    USER = "user"


class Permission(str, Enum):
    """Permission definitions"""
    # User permissions
    CREATE_USERS = "create_users"
    READ_USERS = "read_users"
    UPDATE_USERS = "update_users"
    DELETE_USERS = "delete_users"

    # Company permissions
    CREATE_COMPANIES = "create_companies"
    READ_COMPANIES = "read_companies"
    UPDATE_COMPANIES = "update_companies"
    DELETE_COMPANIES = "delete_companies"

    # Client permissions
    CREATE_CLIENTS = "create_clients"
    READ_CLIENTS = "read_clients"
    UPDATE_CLIENTS = "update_clients"
    DELETE_CLIENTS = "delete_clients"

    # Lead permissions
    CREATE_LEADS = "create_leads"
    READ_LEADS = "read_leads"
    UPDATE_LEADS = "update_leads"
    DELETE_LEADS = "delete_leads"

    # Dashboard and settings
    VIEW_DASHBOARD = "view_dashboard"
    VIEW_ANALYTICS = "view_analytics"
    MANAGE_SETTINGS = "manage_settings"
    MANAGE_ROLES = "manage_roles"

    # Tenant administration
    CREATE_TENANTS = "create_tenants"
    READ_TENANTS = "read_tenants"
    UPDATE_TENANTS = "update_tenants"
    DELETE_TENANTS = "delete_tenants"
    SUPER_ADMIN_ACCESS = "super_admin_access"


def _crud(entity: str) -> Set[Permission]:
    return {Permission(f"{action}_{entity}") for action in ("create", "read", "update", "delete")}


# Default permission bundles, seeded into the roles table
ROLE_PERMISSIONS = {
    RoleName.SUPER_ADMIN: set(Permission),
    RoleName.COMPANY_ADMIN: (
        _crud("users") | _crud("clients") | _crud("leads") | {
            Permission.READ_COMPANIES,
            Permission.UPDATE_COMPANIES,
            Permission.VIEW_DASHBOARD,
            Permission.VIEW_ANALYTICS,
            Permission.MANAGE_SETTINGS,
        }
    ),
    RoleName.MANAGER: (
        _crud("clients") | _crud("leads") | {
            Permission.READ_USERS,
            Permission.UPDATE_USERS,
            Permission.READ_COMPANIES,
            Permission.VIEW_DASHBOARD,
            Permission.VIEW_ANALYTICS,
        }
    ),
    RoleName.SALES_REP: {
        # Sales reps work their own pipeline but cannot delete
        Permission.READ_USERS,
        Permission.READ_COMPANIES,
        Permission.CREATE_CLIENTS,
        Permission.READ_CLIENTS,
        Permission.UPDATE_CLIENTS,
        Permission.CREATE_LEADS,
        Permission.READ_LEADS,
        Permission.UPDATE_LEADS,
        Permission.VIEW_DASHBOARD,
    },
    RoleName.USER: {
        Permission.READ_USERS,
        Permission.READ_COMPANIES,
        Permission.READ_CLIENTS,
        Permission.READ_LEADS,
        Permission.VIEW_DASHBOARD,
    },
}

ROLE_DISPLAY = {
    RoleName.SUPER_ADMIN: ("Super Administrator", "Full access to all tenants and system settings"),
    RoleName.COMPANY_ADMIN: ("Company Administrator", "Full access to company data and settings"),
    RoleName.MANAGER: ("Manager", "Manage team and view reports"),
    RoleName.SALES_REP: ("Sales Representative", "Manage assigned clients and leads"),
    RoleName.USER: ("User", "Basic user access"),
}

# Roles allowed to change another user's role, company or active flag
ADMIN_ROLES = {RoleName.SUPER_ADMIN.value, RoleName.COMPANY_ADMIN.value}


def get_permissions_for_role(role: str) -> Set[Permission]:
    """Get default permissions for a given role"""
    try:
        return set(ROLE_PERMISSIONS[RoleName(role.lower())])
    except ValueError:
        return set()


def has_permission(required_permission: Permission, user_permissions: Iterable[str]) -> bool:
    """Check if user has required permission"""
    granted = {getattr(p, "value", p) for p in user_permissions}
    return Permission(required_permission).value in granted


@dataclass(frozen=True)
class Requirement:
    """What an operation demands of its caller"""
    permission: Optional[Permission] = None
    super_admin: bool = False

    @classmethod
    def authenticated(cls) -> "Requirement":
        return cls()

    @classmethod
    def has(cls, permission: Permission) -> "Requirement":
        return cls(permission=permission)

    @classmethod
    def super_admin_only(cls) -> "Requirement":
        return cls(super_admin=True)


def authorize(context: "AuthContext", requirement: Requirement) -> bool:
    """Allow or deny an operation for a resolved caller"""
    if context is None:
        return False
    if requirement.super_admin and not context.is_super_admin:
        return False
    if requirement.permission is not None:
        return has_permission(requirement.permission, context.permissions)
    return True


def ensure(context: "AuthContext", *requirements: Requirement) -> None:
    """Raise Forbidden unless every requirement is met.

    The message never names the missing permission or role.
    """
    for requirement in requirements:
        if not authorize(context, requirement):
            raise Forbidden()
