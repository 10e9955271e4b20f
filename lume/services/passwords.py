"""
Password hashing.

Only salted bcrypt hashes are stored. Plaintext passwords exist in memory
for the duration of a single login, change or reset.
"""

import secrets
import string

import bcrypt


# bcrypt only looks at the first 72 bytes and refuses anything longer
MAX_PASSWORD_BYTES = 72

TEMPORARY_PASSWORD_LENGTH = 10
_TEMPORARY_ALPHABET = string.ascii_lowercase + string.digits


def is_password_too_long(password: str) -> bool:
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES


def hash_password(password: str) -> str:
    """Hash a password with a fresh salt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored hash. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def generate_temporary_password(length: int = TEMPORARY_PASSWORD_LENGTH) -> str:
    """Random lowercase alphanumeric credential for password resets."""
    return "".join(secrets.choice(_TEMPORARY_ALPHABET) for _ in range(length))
