"""User model: identity, credentials and one-time code state."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from accounts.models.base import Base

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_ADMIN)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """Site user with role-based access.

    ``password_reset_token_digest`` and ``password_reset_expires_at`` are always
    written together: both set while a reset is outstanding, both null otherwise.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    pseudo: Mapped[str] = mapped_column(String(64), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default=ROLE_USER)  # user, admin
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    verification_code_digest: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    password_reset_token_digest: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    password_reset_expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def __repr__(self) -> str:
        return f"<User id={self.id} role={self.role} verified={self.verified}>"
