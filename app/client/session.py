"""
Client-side session state

A ClientSession holds everything a signed-in front end needs: token, user,
permissions, tenant and the query cache. Reads go through the cache;
mutations go through mutate(), which applies the invalidation policy.
"""

from typing import Any, Callable, Dict, Optional, Set
import structlog

from app.client.api import APIError, CRMClient
from app.client.cache import QueryCache, make_key
from app.core.permissions import RoleName

logger = structlog.get_logger(__name__)

# Error codes that end the session
SESSION_ENDING_CODES = {"SESSION_EXPIRED", "SESSION_INVALID", "ACCOUNT_INACTIVE"}

# Resource path -> singular cache prefix
SINGULAR = {
    "clients": "client",
    "leads": "lead",
    "users": "user",
    "companies": "company",
}


class ClientSession:
    def __init__(self, api: CRMClient, cache: Optional[QueryCache] = None):
        self.api = api
        self.cache = cache or QueryCache()
        self.token: Optional[str] = None
        self.user: Optional[Dict[str, Any]] = None
        self.permissions: Set[str] = set()
        self.tenant: Optional[Dict[str, Any]] = None

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None and self.user is not None

    @property
    def is_super_admin(self) -> bool:
        return bool(self.user) and self.user.get("role") == RoleName.SUPER_ADMIN.value

    def has_permission(self, permission) -> bool:
        return getattr(permission, "value", permission) in self.permissions

    def login(self, email: str, password: str, subdomain: Optional[str] = None) -> Dict[str, Any]:
        """Sign in and populate the session; any previous state is discarded"""
        self._teardown()
        body = self.api.login(email, password, subdomain=subdomain)

        self.token = body["token"]
        self.api.token = self.token
        self.user = body["user"]
        self.permissions = set(self.user.get("permissions") or [])
        try:
            if self.user.get("tenant_id"):
                self.tenant = self.api.tenant_info()
        except APIError:
            self._teardown()
            raise

        logger.info("Client session started", user_id=self.user.get("id"), role=self.user.get("role"))
        return self.user

    def logout(self):
        """Tell the server, then drop token and cache whatever it answers"""
        if not self.is_authenticated:
            self._teardown()
            return
        try:
            self.api.logout()
        except APIError as e:
            logger.warning("Logout request failed", code=e.code)
        finally:
            self._teardown()

    def _teardown(self):
        self.token = None
        self.api.token = None
        self.user = None
        self.permissions = set()
        self.tenant = None
        self.cache.clear()

    def _call(self, call: Callable[[], Any]) -> Any:
        try:
            return call()
        except APIError as e:
            if e.code in SESSION_ENDING_CODES:
                logger.info("Session ended by server", code=e.code)
                self._teardown()
            raise

    def query(self, key, loader: Callable[[], Any]) -> Any:
        """Read through the cache"""
        return self.cache.fetch(key, lambda: self._call(loader))

    def mutate(self, entity_type: str, call: Callable[[], Any]) -> Any:
        """Run a mutation, then invalidate per policy.

        Nothing is invalidated when the mutation fails.
        """
        result = self._call(call)
        self.cache.invalidate_for(entity_type)
        return result

    # Reads
    def list(self, resource: str, **params) -> Dict[str, Any]:
        return self.query(make_key(resource, "list", params), lambda: self.api.list(resource, **params))

    def get(self, resource: str, entity_id) -> Dict[str, Any]:
        prefix = SINGULAR.get(resource, resource)
        return self.query(make_key(prefix, str(entity_id)), lambda: self.api.get(resource, entity_id))

    def dashboard(self, section: str = "overview", **params) -> Any:
        return self.query(
            make_key("dashboard", section, params),
            lambda: self.api.dashboard(section, **params),
        )

    # Mutations
    def create(self, resource: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.mutate(resource, lambda: self.api.create(resource, data))

    def update(self, resource: str, entity_id, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.mutate(resource, lambda: self.api.update(resource, entity_id, data))

    def delete(self, resource: str, entity_id) -> Dict[str, Any]:
        return self.mutate(resource, lambda: self.api.delete(resource, entity_id))

    def add_note(self, resource: str, entity_id, content: str, is_private: bool = False) -> Dict[str, Any]:
        return self.mutate(resource, lambda: self.api.add_note(resource, entity_id, content, is_private))

    def add_activity(self, lead_id, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.mutate("leads", lambda: self.api.add_activity(lead_id, data))

    def convert_lead(self, lead_id) -> Dict[str, Any]:
        return self.mutate("lead_conversion", lambda: self.api.convert_lead(lead_id))

    def update_tenant_settings(self, data: Dict[str, Any]) -> Dict[str, Any]:
        self.tenant = self.mutate("tenant", lambda: self.api.update_tenant_settings(data))
        return self.tenant
