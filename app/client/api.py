"""
HTTP client for the CRM API

Every call has a bounded timeout. Network failures and 5xx responses raise
RetryableError; other error responses raise APIError carrying the server's
error code, message and field errors.
"""

from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit
import httpx
import structlog

from app.core.tenant_resolver import extract_subdomain

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT = 10.0
TENANT_HEADER = "X-Tenant-Subdomain"


class APIError(Exception):
    """Error response from the API, rendered from the error envelope"""

    def __init__(
        self,
        message: str,
        code: str = "SERVER_ERROR",
        status_code: Optional[int] = None,
        errors: Optional[List[Dict[str, str]]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.errors = errors or []

    @property
    def retryable(self) -> bool:
        return False


class RetryableError(APIError):
    """Timeouts, connection failures and server-side errors"""

    @property
    def retryable(self) -> bool:
        return True


def _check_envelope(body: Any) -> Dict[str, Any]:
    if not isinstance(body, dict) or body.get("success") is not True:
        raise APIError("Malformed response envelope", code="INVALID_RESPONSE")
    if "token" in body:
        return body
    if "data" not in body:
        raise APIError("Response envelope has no data", code="INVALID_RESPONSE")
    if isinstance(body["data"], list) and "pagination" in body:
        missing = {"count", "total"} - body.keys()
        if missing:
            raise APIError(f"List envelope missing {sorted(missing)}", code="INVALID_RESPONSE")
    return body


class CRMClient:
    """Thin synchronous wrapper over the REST API.

    The tenant hint header is derived from the base URL host with the same
    rule the server uses; the server treats it as advisory only.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.tenant_hint = extract_subdomain(urlsplit(self.base_url).netloc)
        self._http = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def close(self):
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if self.tenant_hint:
            headers[TENANT_HEADER] = self.tenant_hint
        return headers

    def request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """Send a request and return the validated success envelope"""
        try:
            response = self._http.request(method, path, headers=self._headers(), **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("API request timed out", method=method, path=path)
            raise RetryableError(f"Request timed out: {e}", code="TIMEOUT")
        except httpx.TransportError as e:
            logger.warning("API connection error", method=method, path=path, error=str(e))
            raise RetryableError(f"Connection error: {e}", code="CONNECTION_ERROR")

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.status_code >= 500:
            message = body.get("message") if isinstance(body, dict) else None
            raise RetryableError(message or "Server Error", code="SERVER_ERROR", status_code=response.status_code)

        if response.status_code >= 400:
            if not isinstance(body, dict):
                raise APIError(response.reason_phrase, code="HTTP_ERROR", status_code=response.status_code)
            raise APIError(
                body.get("message", response.reason_phrase),
                code=body.get("code", "HTTP_ERROR"),
                status_code=response.status_code,
                errors=body.get("errors"),
            )

        return _check_envelope(body)

    # Auth
    def login(self, email: str, password: str, subdomain: Optional[str] = None) -> Dict[str, Any]:
        payload = {"email": email, "password": password}
        if subdomain:
            payload["subdomain"] = subdomain
        return self.request("POST", "/api/auth/login", json=payload)

    def me(self) -> Dict[str, Any]:
        return self.request("GET", "/api/auth/me")["data"]

    def logout(self) -> Dict[str, Any]:
        return self.request("POST", "/api/auth/logout")

    # Generic resources: users, companies, clients, leads
    def list(self, resource: str, **params) -> Dict[str, Any]:
        params = {k: v for k, v in params.items() if v is not None}
        return self.request("GET", f"/api/{resource}", params=params)

    def get(self, resource: str, entity_id) -> Dict[str, Any]:
        return self.request("GET", f"/api/{resource}/{entity_id}")["data"]

    def create(self, resource: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("POST", f"/api/{resource}", json=data)["data"]

    def update(self, resource: str, entity_id, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("PUT", f"/api/{resource}/{entity_id}", json=data)["data"]

    def delete(self, resource: str, entity_id) -> Dict[str, Any]:
        return self.request("DELETE", f"/api/{resource}/{entity_id}")

    def stats(self, resource: str, **params) -> Dict[str, Any]:
        return self.request("GET", f"/api/{resource}/stats", params=params)["data"]

    # Sub-resources
    def add_note(self, resource: str, entity_id, content: str, is_private: bool = False) -> Dict[str, Any]:
        return self.request(
            "POST", f"/api/{resource}/{entity_id}/notes", json={"content": content, "is_private": is_private}
        )["data"]

    def add_activity(self, lead_id, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("POST", f"/api/leads/{lead_id}/activities", json=data)["data"]

    def convert_lead(self, lead_id) -> Dict[str, Any]:
        return self.request("POST", f"/api/leads/{lead_id}/convert")["data"]

    # Dashboard and tenant
    def dashboard(self, section: str = "overview", **params) -> Any:
        return self.request("GET", f"/api/dashboard/{section}", params=params)["data"]

    def tenant_info(self) -> Dict[str, Any]:
        return self.request("GET", "/api/tenant/info")["data"]

    def update_tenant_settings(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("PUT", "/api/tenant/settings", json=data)["data"]
