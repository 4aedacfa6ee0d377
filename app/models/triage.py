"""Triage assessment model."""

from enum import Enum

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, CreatedAtMixin
from app.db.types import EncryptedText


class UrgencyLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EMERGENCY = "emergency"


class AnxietyLevel(str, Enum):
    NONE = "none"
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"


class SmokingStatus(str, Enum):
    NEVER = "never"
    FORMER = "former"
    CURRENT = "current"


class AlcoholConsumption(str, Enum):
    NONE = "none"
    OCCASIONAL = "occasional"
    REGULAR = "regular"
    EXCESSIVE = "excessive"


class PregnancyStatus(str, Enum):
    NOT_APPLICABLE = "not-applicable"
    NOT_PREGNANT = "not-pregnant"
    PREGNANT = "pregnant"
    TRYING = "trying"


class TriageAssessment(Base, CreatedAtMixin):
    """Clinical intake captured alongside a booking.

    IMPORTANT: Assessments are immutable once created. They are read
    only through the booking that owns them.
    """

    __tablename__ = "triage_assessments"

    user_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=True,
    )
    appointment_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("appointments.id"),
        nullable=True,
    )

    # Presenting complaint
    pain_level: Mapped[int] = mapped_column(Integer, nullable=False)  # 0-10
    pain_duration: Mapped[str] = mapped_column(String(50), nullable=False)
    symptoms: Mapped[str] = mapped_column(Text, nullable=False)
    swelling: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    trauma: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    bleeding: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    infection: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    urgency_level: Mapped[UrgencyLevel] = mapped_column(String(20), nullable=False)
    triage_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Background
    anxiety_level: Mapped[AnxietyLevel | None] = mapped_column(String(20), nullable=True)
    medical_history: Mapped[str | None] = mapped_column(EncryptedText, nullable=True)
    current_medications: Mapped[str | None] = mapped_column(EncryptedText, nullable=True)
    allergies: Mapped[str | None] = mapped_column(EncryptedText, nullable=True)
    previous_dental_treatment: Mapped[str | None] = mapped_column(Text, nullable=True)
    smoking_status: Mapped[SmokingStatus | None] = mapped_column(String(20), nullable=True)
    alcohol_consumption: Mapped[AlcoholConsumption | None] = mapped_column(
        String(20),
        nullable=True,
    )
    pregnancy_status: Mapped[PregnancyStatus | None] = mapped_column(
        String(20),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<TriageAssessment {self.id} urgency={self.urgency_level}>"
