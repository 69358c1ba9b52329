"""
Password hashing and registration checks.
"""

import bcrypt

# bcrypt only looks at the first 72 bytes
_BCRYPT_MAX_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Check a password; a missing or malformed hash never matches."""
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(_encode(plain_password), hashed_password.encode("utf-8"))
    except ValueError:
        return False


def registration_error(
    email: str,
    password: str,
    confirm_password: str,
    min_length: int = 8,
) -> str | None:
    """Return a user-facing message for invalid sign-up input, else None."""
    if "@" not in email:
        return "Enter a valid email address"
    if password != confirm_password:
        return "Passwords do not match"
    if len(password) < min_length:
        return f"Password must be at least {min_length} characters"
    return None
