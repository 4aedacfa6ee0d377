"""Appointment slot model."""

from datetime import date
from enum import Enum

from sqlalchemy import Date, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, CreatedAtMixin


class AppointmentStatus(str, Enum):
    """Slot status.

    user_id is set if and only if the slot is booked.
    """

    AVAILABLE = "available"
    BOOKED = "booked"
    CANCELLED = "cancelled"


class Appointment(Base, CreatedAtMixin):
    """A bookable time at a practice.

    Only the booking approval transition moves a slot from available
    to booked.
    """

    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appointments_practice_date", "practice_id", "appointment_date"),
    )

    practice_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("practices.id"),
        nullable=False,
    )
    dentist_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("dentists.id"),
        nullable=True,
    )
    treatment_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("treatments.id"),
        nullable=True,
    )
    user_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=True,
    )
    appointment_date: Mapped[date] = mapped_column(Date, nullable=False)
    appointment_time: Mapped[str] = mapped_column(String(5), nullable=False)  # HH:MM
    duration: Mapped[int] = mapped_column(Integer, default=30, nullable=False)
    treatment_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[AppointmentStatus] = mapped_column(
        String(20),
        default=AppointmentStatus.AVAILABLE,
        nullable=False,
        index=True,
    )

    @property
    def is_available(self) -> bool:
        return self.status == AppointmentStatus.AVAILABLE

    def __repr__(self) -> str:
        return (
            f"<Appointment {self.id} {self.appointment_date} "
            f"{self.appointment_time} ({self.status})>"
        )
