"""User account and server-side session models."""

from datetime import date, datetime
from enum import Enum

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, BaseNoId, CreatedAtMixin, TimestampMixin
from app.db.types import EncryptedText


class UserType(str, Enum):
    """Kind of account."""

    PATIENT = "patient"
    DENTIST = "dentist"


class User(Base, TimestampMixin):
    """Patient or dentist account.

    Dentists are tied to a practice through its connection tag at
    registration. Guest users are created inline when a booking is
    submitted without an account and can never log in.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    user_type: Mapped[UserType] = mapped_column(
        String(20),
        default=UserType.PATIENT,
        nullable=False,
    )
    practice_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("practices.id"),
        nullable=True,
        index=True,
    )
    is_guest: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # GDPR
    gdpr_consent_given: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    gdpr_consent_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    marketing_consent_given: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    marketing_consent_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    data_retention_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Clinical profile (encrypted at rest)
    medical_conditions: Mapped[str | None] = mapped_column(EncryptedText, nullable=True)
    medications: Mapped[str | None] = mapped_column(EncryptedText, nullable=True)
    allergies: Mapped[str | None] = mapped_column(EncryptedText, nullable=True)

    # Account security
    failed_login_attempts: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    locked_until: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    @property
    def is_dentist(self) -> bool:
        return self.user_type == UserType.DENTIST

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.user_type})>"


class UserSession(BaseNoId, CreatedAtMixin):
    """Server-side login session keyed by its opaque token."""

    __tablename__ = "sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<UserSession user={self.user_id} expires={self.expires_at}>"
