"""
Password hashing and verification.

Uses bcrypt for password hashing with automatic
salting and configurable work factor.
"""

from __future__ import annotations

from typing import Optional

import bcrypt

BCRYPT_ROUNDS = 12

# Checked against when the account does not exist, so unknown logins
# cost the same as wrong passwords.
_DUMMY_HASH = bcrypt.hashpw(b"not-a-password", bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode()


def hash_password(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash a password with bcrypt (auto-salted)."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    """Constant-time comparison against a bcrypt hash; empty hashes never match."""
    if not password_hash:
        bcrypt.checkpw(password.encode(), _DUMMY_HASH.encode())
        return False
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except (ValueError, TypeError):
        return False
