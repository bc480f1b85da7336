"""
JWT authentication and password hashing utilities
"""

from datetime import datetime, timedelta
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from typing import Dict, Optional
import uuid

from app.core.config import get_settings
from app.core.errors import SessionExpired, SessionInvalid

settings = get_settings()
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash a plain-text password with bcrypt"""
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    """Check a plain-text password against a stored hash"""
    if not password_hash:
        return False
    return pwd_context.verify(password, password_hash)


def create_access_token(
    user_id: uuid.UUID,
    tenant_id: Optional[uuid.UUID] = None,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create a signed session token for a user.

    Only identifiers are embedded: role, permissions and active status are
    re-read from the store on every request.
    """
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {
        "sub": str(user_id),
        "tenant_id": str(tenant_id) if tenant_id else None,
        "exp": expire,
        "iat": datetime.utcnow(),
    }

    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict:
    """Decode and validate a session token.

    Raises SessionExpired for a token past its expiry and SessionInvalid for
    anything else that fails verification.
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require_sub": True, "require_exp": True},
        )
    except ExpiredSignatureError:
        raise SessionExpired()
    except JWTError:
        raise SessionInvalid()
    return payload


def verify_token(token: str) -> uuid.UUID:
    """Verify token and return the user id it was issued for"""
    payload = decode_access_token(token)
    try:
        return uuid.UUID(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise SessionInvalid()
