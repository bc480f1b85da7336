"""
Reference data seeding: system roles and the bootstrap super admin
"""

from sqlmodel import Session, select
from typing import Optional
import structlog

from app.core.auth import hash_password
from app.core.permissions import ROLE_DISPLAY, ROLE_PERMISSIONS, RoleName
from app.models.role import Role
from app.models.user import User

logger = structlog.get_logger(__name__)


def seed_roles(session: Session) -> int:
    """Create any missing system role. Returns how many were created."""
    existing = {role.name for role in session.exec(select(Role)).all()}
    created = 0
    for name, permissions in ROLE_PERMISSIONS.items():
        if name in existing:
            continue
        display_name, description = ROLE_DISPLAY[name]
        session.add(Role(
            name=name,
            display_name=display_name,
            description=description,
            permissions=sorted(p.value for p in permissions),
            is_system_role=True,
        ))
        created += 1
    if created:
        session.commit()
        logger.info("Seeded system roles", created=created)
    return created


def get_role(session: Session, name: RoleName) -> Role:
    role = session.exec(select(Role).where(Role.name == RoleName(name))).first()
    if role is None:
        seed_roles(session)
        role = session.exec(select(Role).where(Role.name == RoleName(name))).first()
    return role


def ensure_super_admin(session: Session, email: Optional[str], password: Optional[str]) -> Optional[User]:
    """Create the bootstrap super admin when configured and absent"""
    if not email or not password:
        return None

    role = get_role(session, RoleName.SUPER_ADMIN)
    email = email.lower()
    user = session.exec(
        select(User).where(User.email == email, User.role_id == role.id)
    ).first()
    if user:
        return user

    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name="Super",
        last_name="Admin",
        role_id=role.id,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("Created bootstrap super admin", user_id=str(user.id))
    return user
