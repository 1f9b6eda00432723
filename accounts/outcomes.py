"""Results returned by the auth workflow: a success payload or a tagged failure."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class AuthErrorCode(str, Enum):
    CONFLICT = "conflict"
    INVALID_CREDENTIALS = "invalid_credentials"
    NOT_VERIFIED = "not_verified"
    FORBIDDEN = "forbidden"
    INVALID_TOKEN = "invalid_token"
    VALIDATION = "validation"
    EMAIL_DELIVERY = "email_delivery"
    UNAUTHENTICATED = "unauthenticated"


@dataclass(frozen=True)
class AuthSuccess:
    message: Optional[str] = None
    access_token: Optional[str] = None
    # Caller should clear the session cookies
    clear_session: bool = False

    ok = True


@dataclass(frozen=True)
class AuthFailure:
    code: AuthErrorCode
    message: str

    ok = False


AuthOutcome = Union[AuthSuccess, AuthFailure]
