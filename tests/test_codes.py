"""Tests for one-time verification / reset codes."""
import hashlib

from accounts.codes import digest_code, generate_code


def test_code_has_256_bits_hex():
    """Raw codes are 32 random bytes, hex encoded."""
    code = generate_code()
    assert len(code.raw) == 64
    int(code.raw, 16)


def test_digest_is_sha256_of_raw():
    code = generate_code()
    assert code.digest == hashlib.sha256(code.raw.encode()).hexdigest()
    assert digest_code(code.raw) == code.digest
    assert code.digest != code.raw


def test_codes_are_unique():
    assert len({generate_code().raw for _ in range(50)}) == 50


def test_repr_hides_raw_value():
    """The raw code must not leak through logging of the tuple."""
    code = generate_code()
    assert code.raw not in repr(code)
