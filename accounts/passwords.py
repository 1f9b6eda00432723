"""Password hashing with bcrypt."""
from __future__ import annotations

import hashlib

from passlib.context import CryptContext
from starlette.concurrency import run_in_threadpool


def _prepare_password(password: str) -> str:
    """Bcrypt has a 72-byte limit. Pre-hash longer passwords with SHA256."""
    encoded = password.encode("utf-8")
    if len(encoded) > 72:
        return hashlib.sha256(encoded).hexdigest()
    return password


class PasswordHasher:
    """Bcrypt hashing with a fixed work factor, run off the event loop."""

    def __init__(self, rounds: int = 12) -> None:
        self._context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash_sync(self, password: str) -> str:
        return self._context.hash(_prepare_password(password))

    def verify_sync(self, plain: str, hashed: str) -> bool:
        try:
            return self._context.verify(_prepare_password(plain), hashed)
        except ValueError:
            # Unrecognised or corrupt hash
            return False

    async def hash(self, password: str) -> str:
        return await run_in_threadpool(self.hash_sync, password)

    async def verify(self, plain: str, hashed: str) -> bool:
        return await run_in_threadpool(self.verify_sync, plain, hashed)
