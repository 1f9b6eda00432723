"""Tests for access token signing and verification."""
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import jwt

from accounts.tokens import TokenCodec


def test_sign_and_verify(settings):
    """A freshly signed token verifies to its subject."""
    codec = TokenCodec(settings)
    token = codec.sign(42)
    assert codec.verify(token) == "42"


def test_expiry_claim_uses_configured_ttl(settings):
    """exp is issued-at plus ACCESS_TOKEN_EXPIRES_IN minutes."""
    codec = TokenCodec(replace(settings, access_token_expires_in=30))
    payload = jwt.decode(codec.sign(1), settings.jwt_secret, algorithms=["HS256"])
    assert payload["exp"] - payload["iat"] == 30 * 60


def test_expired_token_is_invalid(settings):
    """Expired tokens verify to None rather than raising."""
    codec = TokenCodec(replace(settings, access_token_expires_in=-1))
    assert codec.verify(codec.sign(1)) is None


def test_wrong_secret_is_invalid(settings):
    """Tokens signed with another secret are rejected."""
    other = TokenCodec(replace(settings, jwt_secret="someone-else-0123456789abcdef0123456789"))
    assert TokenCodec(settings).verify(other.sign(1)) is None


def test_tampered_token_is_invalid(settings):
    """Changing the payload breaks the signature."""
    codec = TokenCodec(settings)
    header, _, signature = codec.sign(1).split(".")
    forged_payload = jwt.encode({"sub": "2"}, "forger-0123456789abcdef0123456789", algorithm="HS256").split(".")[1]
    assert codec.verify(f"{header}.{forged_payload}.{signature}") is None


def test_garbage_is_invalid(settings):
    """Malformed input never raises."""
    codec = TokenCodec(settings)
    for token in ("", "not-a-jwt", "a.b.c", "..."):
        assert codec.verify(token) is None


def test_token_without_subject_is_invalid(settings):
    """A correctly signed token without sub is still rejected."""
    exp = datetime.now(timezone.utc) + timedelta(minutes=5)
    token = jwt.encode({"exp": exp}, settings.jwt_secret, algorithm="HS256")
    assert TokenCodec(settings).verify(token) is None
