"""Create the first admin account from configuration."""
from __future__ import annotations

import logging
from typing import Optional

from accounts.models import ROLE_ADMIN, User
from accounts.passwords import PasswordHasher
from accounts.repository import DuplicateEmailError, UserRepository
from accounts.service import normalize_email
from config import Settings

logger = logging.getLogger("techwatch.auth")


async def bootstrap_admin(settings: Settings, users: UserRepository, passwords: PasswordHasher) -> Optional[User]:
    """Create a verified admin from INITIAL_ADMIN_* if both are set and no such user exists."""
    if not settings.initial_admin_email or not settings.initial_admin_password:
        return None
    email = normalize_email(settings.initial_admin_email)
    if await users.get_by_email(email):
        return None
    try:
        user = await users.create(
            pseudo=settings.initial_admin_pseudo,
            email=email,
            password_hash=await passwords.hash(settings.initial_admin_password),
            verification_code_digest=None,
            role=ROLE_ADMIN,
            verified=True,
        )
    except DuplicateEmailError:
        # Another worker created it first
        return None
    logger.info("Bootstrapped initial admin user %s", user.id)
    return user
