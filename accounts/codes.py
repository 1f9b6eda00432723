"""One-time codes for email verification and password reset.

Only the SHA-256 digest of a code is ever persisted. The raw value travels once,
inside an emailed link, and is re-digested when presented back.
"""
from __future__ import annotations

import hashlib
import secrets
from typing import NamedTuple

CODE_BYTES = 32


class OneTimeCode(NamedTuple):
    raw: str
    digest: str

    def __repr__(self) -> str:
        return f"OneTimeCode(digest={self.digest!r})"


def digest_code(raw: str) -> str:
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def generate_code() -> OneTimeCode:
    raw = secrets.token_hex(CODE_BYTES)
    return OneTimeCode(raw=raw, digest=digest_code(raw))
