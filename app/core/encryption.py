"""Field-level encryption for clinical data at rest."""

from functools import lru_cache

from cryptography.fernet import Fernet, InvalidToken

from app.core.config import settings

ENCRYPTED_PREFIX = "enc:"


@lru_cache
def _get_fernet() -> Fernet:
    return Fernet(settings.encryption_key.encode())


def is_encrypted(value: str | None) -> bool:
    """Check whether a stored value carries the encryption prefix."""
    return bool(value) and value.startswith(ENCRYPTED_PREFIX)


def encrypt_value(value: str | None) -> str | None:
    """Encrypt a string value.

    Empty values are stored as-is.
    """
    if value is None or value == "":
        return value
    if is_encrypted(value):
        return value
    token = _get_fernet().encrypt(value.encode()).decode()
    return f"{ENCRYPTED_PREFIX}{token}"


def decrypt_value(value: str | None) -> str | None:
    """Decrypt a value written by encrypt_value.

    Values without the prefix are returned unchanged so rows written
    before encryption was enabled stay readable.

    Raises:
        ValueError: If the ciphertext cannot be decrypted with the current key
    """
    if not is_encrypted(value):
        return value
    token = value[len(ENCRYPTED_PREFIX):]
    try:
        return _get_fernet().decrypt(token.encode()).decode()
    except InvalidToken as exc:
        raise ValueError("Unable to decrypt value with configured key") from exc
