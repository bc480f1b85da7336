"""
Auth API endpoints - registration, login and the caller's own profile
"""

from fastapi import APIRouter, Depends, status
from sqlmodel import Session
from datetime import datetime
from typing import Optional
import structlog

from app.core.auth import hash_password, verify_password
from app.core.database import get_session
from app.core.dependencies import AuthContext, get_current_user
from app.core.errors import CRMError, InvalidCredentials, ServerError, ValidationError
from app.core.tenant_resolver import get_request_tenant
from app.models.role import Role
from app.models.tenant import Tenant
from app.schemas.auth import (
    ChangePasswordRequest, LoginRequest, ProfileUpdate, RegisterRequest, TokenResponse
)
from app.schemas.common import DataResponse, MessageResponse
from app.schemas.user import UserResponse
from app.services.authentication import authenticate, register_account
from app.services.tenants import email_taken

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(
    data: RegisterRequest,
    session: Session = Depends(get_session)
):
    """Sign up a new tenant with its first company administrator"""
    try:
        tenant, company, user, token = register_account(session, data)
    except CRMError:
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        logger.error("Registration failed", subdomain=data.subdomain, error=str(e))
        raise ServerError("Failed to register account")

    role = session.get(Role, user.role_id)
    return TokenResponse(token=token, user=UserResponse.from_user(user, role))


@router.post("/login", response_model=TokenResponse)
def login(
    data: LoginRequest,
    tenant: Optional[Tenant] = Depends(get_request_tenant),
    session: Session = Depends(get_session)
):
    """Exchange email and password for a session token"""
    user, token = authenticate(session, data.email, data.password, tenant, data.subdomain)
    role = session.get(Role, user.role_id)
    return TokenResponse(token=token, user=UserResponse.from_user(user, role))


@router.get("/me", response_model=DataResponse[UserResponse])
def me(context: AuthContext = Depends(get_current_user)):
    """Current user with role and permissions"""
    return DataResponse(data=UserResponse.from_user(context.user, context.role))


@router.put("/profile", response_model=DataResponse[UserResponse])
def update_profile(
    data: ProfileUpdate,
    context: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    """Update the caller's own name, phone and email"""
    user = context.user
    changes = data.model_dump(exclude_unset=True)

    if "email" in changes and changes["email"]:
        changes["email"] = changes["email"].lower()
        if changes["email"] != user.email and email_taken(session, changes["email"], user.tenant_id, user.id):
            raise ValidationError.for_field("email", "Email is already in use")

    try:
        for key, value in changes.items():
            if value is not None:
                setattr(user, key, value)
        user.updated_at = datetime.utcnow()
        session.add(user)
        session.commit()
        session.refresh(user)
    except Exception as e:
        session.rollback()
        logger.error("Profile update failed", user_id=str(user.id), error=str(e))
        raise ServerError("Failed to update profile")

    return DataResponse(data=UserResponse.from_user(user, context.role), message="Profile updated successfully")


@router.put("/change-password", response_model=MessageResponse)
def change_password(
    data: ChangePasswordRequest,
    context: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    user = context.user
    if not verify_password(data.current_password, user.password_hash):
        raise InvalidCredentials("Current password is incorrect")

    user.password_hash = hash_password(data.new_password)
    user.updated_at = datetime.utcnow()
    session.add(user)
    session.commit()

    logger.info("Password changed", user_id=str(user.id))
    return MessageResponse(message="Password changed successfully")


@router.post("/logout", response_model=MessageResponse)
def logout(context: AuthContext = Depends(get_current_user)):
    """Tokens are stateless; the client discards its copy"""
    logger.info("User logged out", user_id=str(context.user_id))
    return MessageResponse(message="Logged out successfully")
