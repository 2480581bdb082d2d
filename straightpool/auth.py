"""
Admin PIN: a shared secret that gates league-admin changes.
Stored only as a hash; no user accounts.
"""
from __future__ import annotations

import os

from passlib.context import CryptContext

# pbkdf2_sha256 needs no native backend
pin_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
ADMIN_PIN_ENV = "STRAIGHTPOOL_ADMIN_PIN"
DEFAULT_ADMIN_PIN = "7777"

_admin_pin_hash: str | None = None


def hash_pin(pin: str) -> str:
    return pin_context.hash(pin)


def verify_pin(plain: str | None, hashed: str) -> bool:
    if not plain or not hashed:
        return False
    return pin_context.verify(plain, hashed)


def set_admin_pin(pin: str) -> None:
    """Replace the admin PIN for this process."""
    global _admin_pin_hash
    _admin_pin_hash = hash_pin(pin)


def admin_pin_hash() -> str:
    global _admin_pin_hash
    if _admin_pin_hash is None:
        _admin_pin_hash = hash_pin(os.environ.get(ADMIN_PIN_ENV, DEFAULT_ADMIN_PIN))
    return _admin_pin_hash


def check_admin_pin(plain: str | None) -> bool:
    return verify_pin(plain, admin_pin_hash())
