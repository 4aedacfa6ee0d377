"""Security utilities for authentication and authorization."""

import re
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings
from app.utils.time import ensure_aware

# Password hashing context using bcrypt
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)

MIN_PASSWORD_LENGTH = 8

# Passwords that pass the composition rules but are guessable in a
# healthcare setting
COMMON_PASSWORDS = frozenset(
    {
        "password123",
        "nhs12345",
        "medical123",
        "doctor123",
        "nurse123",
        "patient123",
        "dental123",
        "health123",
        "clinic123",
    }
)

_SPECIAL_CHARACTERS = re.compile(r"[!@#$%^&*(),.?\":{}|<>]")


@dataclass
class PasswordStrength:
    """Result of a password strength check."""

    valid: bool
    errors: list[str] = field(default_factory=list)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a hashed password.

    Malformed or unknown hashes verify as False rather than raising.
    """
    if not plain_password or not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        return False


def hash_password(password: str) -> str:
    """Hash a password using bcrypt.

    Raises:
        ValueError: If the password is empty
    """
    if not password:
        raise ValueError("Password must not be empty")
    return pwd_context.hash(password)


def validate_password_strength(password: str) -> PasswordStrength:
    """Check a candidate password against the composition rules.

    Args:
        password: Plaintext candidate

    Returns:
        PasswordStrength with every rule the password breaks
    """
    errors = []

    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        errors.append("Password must contain at least one number")
    if not _SPECIAL_CHARACTERS.search(password):
        errors.append("Password must contain at least one special character")
    if password.lower() in COMMON_PASSWORDS:
        errors.append(
            "Password is too common. Please choose a more unique password"
        )

    return PasswordStrength(valid=not errors, errors=errors)


def is_account_locked(
    failed_attempts: int,
    locked_until: datetime | None,
    now: datetime | None = None,
) -> bool:
    """Check whether an account is inside its lockout window.

    Args:
        failed_attempts: Consecutive failed login attempts
        locked_until: End of the lockout window, if one was set
        now: Reference time (defaults to current UTC time)

    Returns:
        True if the account is currently locked
    """
    if failed_attempts < settings.max_login_attempts or locked_until is None:
        return False
    now = now or datetime.now(timezone.utc)
    return ensure_aware(now) < ensure_aware(locked_until)


def lockout_expiry(now: datetime | None = None) -> datetime:
    """Return the end of a lockout window starting now."""
    now = now or datetime.now(timezone.utc)
    return now + timedelta(minutes=settings.lockout_minutes)


def create_access_token(
    subject: str,
    token_type: str = "access",
    expires_delta: timedelta | None = None,
    additional_claims: dict | None = None,
) -> str:
    """Create a JWT access token.

    Args:
        subject: The subject of the token (typically user ID)
        token_type: Type of token (access, refresh, etc.)
        expires_delta: Optional custom expiration time
        additional_claims: Optional additional claims to include

    Returns:
        Encoded JWT token string
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    expire = datetime.now(timezone.utc) + expires_delta

    to_encode = {
        "sub": subject,
        "type": token_type,
        "exp": expire,
        "iat": datetime.now(timezone.utc),
    }

    if additional_claims:
        to_encode.update(additional_claims)

    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict | None:
    """Decode and validate a JWT access token.

    Args:
        token: The JWT token string

    Returns:
        Decoded token payload or None if invalid
    """
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
        return payload
    except JWTError:
        return None


def generate_session_token() -> str:
    """Generate a 256-bit session token as 64 hex characters."""
    return secrets.token_hex(32)


def generate_unusable_password() -> str:
    """Generate a random secret for accounts that must never log in."""
    return secrets.token_urlsafe(32)
