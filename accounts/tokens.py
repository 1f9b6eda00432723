"""Access tokens: signed, time-bound JWTs carrying the user id as subject."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from config import Settings


class TokenCodec:
    """Sign and verify access tokens with the process-wide secret."""

    def __init__(self, settings: Settings) -> None:
        self._secret = settings.jwt_secret
        self._algorithm = settings.jwt_algorithm
        self._ttl = timedelta(minutes=settings.access_token_expires_in)

    def sign(self, subject_id: int | str) -> str:
        now = datetime.now(timezone.utc)
        payload = {"sub": str(subject_id), "iat": now, "exp": now + self._ttl}
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> Optional[str]:
        """Return the subject id, or None for a bad signature, malformed token or expired claim."""
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.InvalidTokenError:
            return None
        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject:
            return None
        return subject
