from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import Conflict
from app.models.user import Role, User

DUPLICATE_EMAIL_MESSAGE = "User already exists with this email"


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def find_user_by_tenant_and_email(db: Session, tenant_id: str, email: str) -> User | None:
    return (
        db.query(User)
        .filter(User.tenant_id == str(tenant_id), func.lower(User.email) == normalize_email(email))
        .first()
    )


def find_user_by_id(db: Session, user_id: str) -> User | None:
    return db.get(User, str(user_id))


def create_user(
    db: Session,
    *,
    tenant_id: str,
    email: str,
    name: str,
    hashed_password: str,
    role: Role = Role.STAFF,
) -> User:
    user = User(
        tenant_id=str(tenant_id),
        email=normalize_email(email),
        name=name.strip(),
        hashed_password=hashed_password,
        role=role,
        is_active=True,
    )
    db.add(user)
    try:
        db.flush()
    except IntegrityError as exc:
        raise Conflict(DUPLICATE_EMAIL_MESSAGE) from exc
    return user


def update_user_last_login(db: Session, user: User) -> User:
    user.last_login = datetime.now(timezone.utc)
    db.flush()
    return user
