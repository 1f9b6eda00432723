"""Credential store: persistence of users and their one-time code state."""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from accounts.models import ROLE_USER, User


class DuplicateEmailError(Exception):
    """The store rejected a user because the email is already taken."""


def as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


class UserRepository(ABC):
    """Async interface the auth workflow reads and writes users through."""

    @abstractmethod
    async def get_by_id(self, user_id: int) -> Optional[User]:
        ...

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[User]:
        ...

    @abstractmethod
    async def create(
        self,
        *,
        pseudo: str,
        email: str,
        password_hash: str,
        verification_code_digest: Optional[str],
        role: str = ROLE_USER,
        verified: bool = False,
    ) -> User:
        """Insert a user. Raises DuplicateEmailError if the email is taken."""
        ...

    @abstractmethod
    async def set_verification_digest(self, user_id: int, digest: Optional[str]) -> None:
        ...

    @abstractmethod
    async def consume_verification_digest(self, digest: str) -> Optional[User]:
        """Mark the matching user verified and clear the digest. None if nothing matches."""
        ...

    @abstractmethod
    async def set_password_reset(
        self, user_id: int, digest: Optional[str], expires_at: Optional[datetime]
    ) -> None:
        ...

    @abstractmethod
    async def get_by_password_reset_digest(self, digest: str, now: datetime) -> Optional[User]:
        """Return the user holding this reset digest, only while it has not expired."""
        ...

    @abstractmethod
    async def update_password(self, user_id: int, password_hash: str) -> None:
        """Store a new password hash and clear any outstanding reset."""
        ...

    @abstractmethod
    async def list_users(self) -> list[User]:
        ...


class SqlUserRepository(UserRepository):
    """UserRepository over async SQLAlchemy sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_by_id(self, user_id: int) -> Optional[User]:
        async with self._session_factory() as session:
            return await session.get(User, user_id)

    async def get_by_email(self, email: str) -> Optional[User]:
        async with self._session_factory() as session:
            result = await session.execute(select(User).where(User.email == email))
            return result.scalar_one_or_none()

    async def create(
        self,
        *,
        pseudo: str,
        email: str,
        password_hash: str,
        verification_code_digest: Optional[str],
        role: str = ROLE_USER,
        verified: bool = False,
    ) -> User:
        async with self._session_factory() as session:
            user = User(
                pseudo=pseudo,
                email=email,
                password_hash=password_hash,
                verification_code_digest=verification_code_digest,
                role=role,
                verified=verified,
            )
            session.add(user)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise DuplicateEmailError(email) from e
            await session.refresh(user)
            return user

    async def set_verification_digest(self, user_id: int, digest: Optional[str]) -> None:
        async with self._session_factory() as session:
            await session.execute(
                update(User).where(User.id == user_id).values(verification_code_digest=digest)
            )
            await session.commit()

    async def consume_verification_digest(self, digest: str) -> Optional[User]:
        async with self._session_factory() as session:
            result = await session.execute(select(User).where(User.verification_code_digest == digest))
            user = result.scalar_one_or_none()
            if not user:
                return None
            # Guarded on the digest so a concurrent consumer matches zero rows
            consumed = await session.execute(
                update(User)
                .where(User.id == user.id, User.verification_code_digest == digest)
                .values(verified=True, verification_code_digest=None)
            )
            await session.commit()
            if consumed.rowcount != 1:
                return None
            await session.refresh(user)
            return user

    async def set_password_reset(
        self, user_id: int, digest: Optional[str], expires_at: Optional[datetime]
    ) -> None:
        async with self._session_factory() as session:
            await session.execute(
                update(User)
                .where(User.id == user_id)
                .values(password_reset_token_digest=digest, password_reset_expires_at=expires_at)
            )
            await session.commit()

    async def get_by_password_reset_digest(self, digest: str, now: datetime) -> Optional[User]:
        async with self._session_factory() as session:
            result = await session.execute(select(User).where(User.password_reset_token_digest == digest))
            user = result.scalar_one_or_none()
        if not user:
            return None
        expires_at = as_utc(user.password_reset_expires_at)
        if expires_at is None or expires_at <= as_utc(now):
            return None
        return user

    async def update_password(self, user_id: int, password_hash: str) -> None:
        async with self._session_factory() as session:
            await session.execute(
                update(User)
                .where(User.id == user_id)
                .values(
                    password_hash=password_hash,
                    password_reset_token_digest=None,
                    password_reset_expires_at=None,
                )
            )
            await session.commit()

    async def list_users(self) -> list[User]:
        async with self._session_factory() as session:
            result = await session.execute(select(User).order_by(User.id))
            return list(result.scalars().all())


class InMemoryUserRepository(UserRepository):
    """Dict-backed UserRepository for tests. Enforces the same unique email rule."""

    def __init__(self) -> None:
        self._users: dict[int, User] = {}
        self._next_id = 1

    async def get_by_id(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    async def get_by_email(self, email: str) -> Optional[User]:
        return next((u for u in self._users.values() if u.email == email), None)

    async def create(
        self,
        *,
        pseudo: str,
        email: str,
        password_hash: str,
        verification_code_digest: Optional[str],
        role: str = ROLE_USER,
        verified: bool = False,
    ) -> User:
        if any(u.email == email for u in self._users.values()):
            raise DuplicateEmailError(email)
        user = User(
            id=self._next_id,
            pseudo=pseudo,
            email=email,
            password_hash=password_hash,
            role=role,
            verified=verified,
            verification_code_digest=verification_code_digest,
            password_reset_token_digest=None,
            password_reset_expires_at=None,
            created_at=datetime.now(timezone.utc),
        )
        self._users[user.id] = user
        self._next_id += 1
        return user

    async def set_verification_digest(self, user_id: int, digest: Optional[str]) -> None:
        user = self._users.get(user_id)
        if user:
            user.verification_code_digest = digest

    async def consume_verification_digest(self, digest: str) -> Optional[User]:
        for user in self._users.values():
            if user.verification_code_digest == digest:
                user.verified = True
                user.verification_code_digest = None
                return user
        return None

    async def set_password_reset(
        self, user_id: int, digest: Optional[str], expires_at: Optional[datetime]
    ) -> None:
        user = self._users.get(user_id)
        if user:
            user.password_reset_token_digest = digest
            user.password_reset_expires_at = expires_at

    async def get_by_password_reset_digest(self, digest: str, now: datetime) -> Optional[User]:
        for user in self._users.values():
            if user.password_reset_token_digest != digest:
                continue
            expires_at = as_utc(user.password_reset_expires_at)
            if expires_at is not None and expires_at > as_utc(now):
                return user
        return None

    async def update_password(self, user_id: int, password_hash: str) -> None:
        user = self._users.get(user_id)
        if user:
            user.password_hash = password_hash
            user.password_reset_token_digest = None
            user.password_reset_expires_at = None

    async def list_users(self) -> list[User]:
        return [self._users[k] for k in sorted(self._users)]
