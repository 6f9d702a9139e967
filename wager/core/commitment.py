"""Commit-reveal hashing.

A commitment is ``keccak256(guess as 1 LE byte || salt as 8 LE bytes)``.
"""
import hmac
import secrets
from typing import Union

from Crypto.Hash import keccak

from .curve import MAX_VALUE
from .errors import ErrorCode, ValidationError

COMMITMENT_SIZE = 32
SALT_MAX = 2**64 - 1


def validate_guess(guess: int, code: ErrorCode = ErrorCode.INVALID_GUESS) -> int:
    if isinstance(guess, bool) or not isinstance(guess, int) or not 0 <= guess <= MAX_VALUE:
        raise ValidationError(code, f"got {guess!r}")
    return guess


def validate_salt(salt: int) -> int:
    if isinstance(salt, bool) or not isinstance(salt, int) or not 0 <= salt <= SALT_MAX:
        raise ValidationError(ErrorCode.INVALID_SALT)
    return salt


def parse_commitment(value: Union[bytes, bytearray, str]) -> bytes:
    """Accept raw bytes or a hex string (optionally ``0x``-prefixed)."""
    if isinstance(value, str):
        text = value[2:] if value.lower().startswith("0x") else value
        try:
            value = bytes.fromhex(text)
        except ValueError:
            raise ValidationError(ErrorCode.INVALID_COMMITMENT, "not valid hex")
    if not isinstance(value, (bytes, bytearray)) or len(value) != COMMITMENT_SIZE:
        raise ValidationError(ErrorCode.INVALID_COMMITMENT)
    return bytes(value)


def make_commitment(guess: int, salt: int) -> bytes:
    """Hash a guess and salt into a 32-byte commitment."""
    validate_guess(guess)
    validate_salt(salt)
    hasher = keccak.new(digest_bits=256)
    hasher.update(guess.to_bytes(1, "little"))
    hasher.update(salt.to_bytes(8, "little"))
    return hasher.digest()


def verify_commitment(commitment: bytes, guess: int, salt: int) -> bool:
    """Check a revealed (guess, salt) against a stored commitment."""
    return hmac.compare_digest(make_commitment(guess, salt), commitment)


def random_salt() -> int:
    """Draw a cryptographically random u64 salt."""
    return secrets.randbits(64)
