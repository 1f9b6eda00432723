"""Tests for bcrypt password hashing."""
import pytest

from accounts.passwords import PasswordHasher


@pytest.mark.asyncio
async def test_hash_and_verify():
    hasher = PasswordHasher(rounds=4)
    hashed = await hasher.hash("Secret1!")
    assert hashed != "Secret1!"
    assert await hasher.verify("Secret1!", hashed)
    assert not await hasher.verify("secret1!", hashed)


@pytest.mark.asyncio
async def test_long_passwords_are_not_truncated():
    """Passwords beyond bcrypt's 72 bytes still differ in their tails."""
    hasher = PasswordHasher(rounds=4)
    base = "x" * 80
    hashed = await hasher.hash(base + "a")
    assert await hasher.verify(base + "a", hashed)
    assert not await hasher.verify(base + "b", hashed)


def test_corrupt_hash_does_not_verify():
    assert PasswordHasher(rounds=4).verify_sync("Secret1!", "not-a-hash") is False
