"""Booking model: a patient's request to occupy a slot."""

from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, TimestampMixin


class BookingStatus(str, Enum):
    """Booking lifecycle state.

    pending_approval moves to approved or rejected exactly once.
    """

    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PatientAnxiety(str, Enum):
    COMFORTABLE = "comfortable"
    NERVOUS = "nervous"
    ANXIOUS = "anxious"


# Statuses that hold an appointment; at most one booking per slot may be in one
OPEN_BOOKING_STATUSES = (BookingStatus.PENDING_APPROVAL, BookingStatus.APPROVED)

_open_booking_clause = text("status IN ('pending_approval', 'approved')")


class Booking(Base, TimestampMixin):
    """Booking request awaiting or past dentist approval.

    Bookings are never deleted; rejected ones stay as an audit trail.
    """

    __tablename__ = "bookings"
    __table_args__ = (
        Index(
            "uq_bookings_open_appointment",
            "appointment_id",
            unique=True,
            postgresql_where=_open_booking_clause,
            sqlite_where=_open_booking_clause,
        ),
    )

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    appointment_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("appointments.id"),
        nullable=False,
    )
    triage_assessment_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("triage_assessments.id"),
        nullable=True,
    )

    treatment_category: Mapped[str] = mapped_column(String(20), nullable=False)
    accessibility_needs: Mapped[list | None] = mapped_column(JSON, nullable=True)
    medications: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    allergies: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    last_dental_visit: Mapped[str | None] = mapped_column(String(50), nullable=True)
    anxiety_level: Mapped[PatientAnxiety | None] = mapped_column(String(20), nullable=True)
    special_requests: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[BookingStatus] = mapped_column(
        String(20),
        default=BookingStatus.PENDING_APPROVAL,
        nullable=False,
        index=True,
    )
    approval_status: Mapped[ApprovalStatus] = mapped_column(
        String(20),
        default=ApprovalStatus.PENDING,
        nullable=False,
    )
    approved_by: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=True,
    )
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    @property
    def is_pending(self) -> bool:
        return self.status == BookingStatus.PENDING_APPROVAL

    def __repr__(self) -> str:
        return f"<Booking {self.id} appointment={self.appointment_id} ({self.status})>"
