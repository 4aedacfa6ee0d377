"""Custom column types."""

from sqlalchemy import Text
from sqlalchemy.types import TypeDecorator

from app.core.encryption import decrypt_value, encrypt_value


class EncryptedText(TypeDecorator):
    """Text column transparently encrypted with the application Fernet key."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return encrypt_value(value)

    def process_result_value(self, value, dialect):
        return decrypt_value(value)
