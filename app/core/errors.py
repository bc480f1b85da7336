"""
Error taxonomy and FastAPI exception handlers

Every failure the API reports is a CRMError subclass. Handlers render them
into the canonical error envelope: {"success": false, "code", "message"}
plus a field-level "errors" list for validation failures.
"""

from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import structlog

logger = structlog.get_logger(__name__)


class CRMError(Exception):
    """Base class for errors surfaced to API callers"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "SERVER_ERROR"
    message: str = "Server Error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "code": self.code, "message": self.message}


class InvalidCredentials(CRMError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "INVALID_CREDENTIALS"
    message = "Invalid email or password"


class AccountInactive(CRMError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "ACCOUNT_INACTIVE"
    message = "Account is inactive. Please contact your administrator."


class SessionExpired(CRMError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "SESSION_EXPIRED"
    message = "Session has expired. Please log in again."


class SessionInvalid(CRMError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "SESSION_INVALID"
    message = "Not authorized to access this route"


class TenantNotFound(CRMError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "TENANT_NOT_FOUND"
    message = "Tenant not found for this subdomain"


class TenantRequired(CRMError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "TENANT_REQUIRED"
    message = "Tenant not identified. Please ensure you are accessing the correct subdomain."


class TenantInactive(CRMError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "TENANT_INACTIVE"
    message = "Tenant account is not active"


class Forbidden(CRMError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    message = "You do not have permission to perform this action"


class NotFound(CRMError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    message = "Resource not found"


class ValidationError(CRMError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"
    message = "Validation failed"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.errors = errors or []

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, errors=[{"field": field, "message": message}])

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["errors"] = self.errors
        return data


class AlreadyConverted(CRMError):
    status_code = status.HTTP_409_CONFLICT
    code = "ALREADY_CONVERTED"
    message = "Lead has already been converted to a client"


class ServerError(CRMError):
    pass


def _field_path(loc) -> str:
    # Drop the leading "body"/"query"/"path" marker
    parts = [str(part) for part in loc[1:]] if len(loc) > 1 else [str(part) for part in loc]
    return ".".join(parts)


async def crm_error_handler(request: Request, exc: CRMError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Request failed", path=request.url.path, code=exc.code, error=exc.message)
    else:
        logger.info("Request rejected", path=request.url.path, code=exc.code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": _field_path(error.get("loc", ())), "message": error.get("msg", "Invalid value")}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=ValidationError.status_code,
        content=ValidationError(errors=errors).to_dict(),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error", path=request.url.path, error=str(exc), exc_info=exc)
    return JSONResponse(
        status_code=ServerError.status_code,
        content=ServerError().to_dict(),
    )


def register_exception_handlers(app: FastAPI):
    """Attach the error envelope handlers to the application"""
    app.add_exception_handler(CRMError, crm_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
