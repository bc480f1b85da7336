"""
Schemas for API responses and requests
"""

from app.schemas.common import DataResponse, ListResponse, MessageResponse
from app.schemas.auth import TokenResponse, LoginRequest, RegisterRequest
from app.schemas.user import UserCreate, UserUpdate, UserResponse

__all__ = [
    "DataResponse",
    "ListResponse",
    "MessageResponse",
    "TokenResponse",
    "LoginRequest",
    "RegisterRequest",
    "UserCreate",
    "UserUpdate",
    "UserResponse",
]
