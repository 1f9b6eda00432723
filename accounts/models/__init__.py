"""Database models."""
from accounts.models.base import Base, Database
from accounts.models.user import ROLE_ADMIN, ROLE_USER, ROLES, User  # noqa: F401 - for metadata

__all__ = [
    "Base",
    "Database",
    "User",
    "ROLE_ADMIN",
    "ROLE_USER",
    "ROLES",
]
