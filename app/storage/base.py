"""Storage capability shared by the in-memory and database backends.

Services never talk to a session or a dict directly. They receive a
Storage handle scoped to one unit of work and call the operations below.
Every state transition that guards a slot is atomic within a backend.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, AsyncContextManager, Callable

from app.models import (
    Appointment,
    AuditLog,
    Booking,
    BookingStatus,
    Dentist,
    Practice,
    Treatment,
    TriageAssessment,
    User,
    UserSession,
)


@dataclass
class PracticeBookingRecord:
    """Booking joined with the data a dentist needs to review it."""

    booking: Booking
    appointment: Appointment
    patient: User
    treatment: Treatment | None
    triage: TriageAssessment | None


@dataclass
class UserBookingRecord:
    """Booking joined with the data a patient sees in their history."""

    booking: Booking
    appointment: Appointment
    practice: Practice
    treatment: Treatment | None


class Storage(ABC):
    """Abstract persistence operations for the booking marketplace."""

    # Users

    @abstractmethod
    async def get_user(self, user_id: int) -> User | None:
        pass

    @abstractmethod
    async def get_user_by_email(self, email: str) -> User | None:
        pass

    @abstractmethod
    async def create_user(self, **fields: Any) -> User:
        """Insert a user.

        Raises:
            ConflictError: If the e-mail address is already registered
        """
        pass

    @abstractmethod
    async def update_user(self, user_id: int, **fields: Any) -> User:
        """Update user columns.

        Raises:
            NotFoundError: If the user does not exist
        """
        pass

    # Sessions

    @abstractmethod
    async def create_session(
        self, token: str, user_id: int, expires_at: datetime
    ) -> UserSession:
        pass

    @abstractmethod
    async def get_session(self, token: str) -> UserSession | None:
        pass

    @abstractmethod
    async def delete_session(self, token: str) -> None:
        pass

    @abstractmethod
    async def delete_user_sessions(self, user_id: int) -> None:
        pass

    # Practice directory

    @abstractmethod
    async def list_practices(self, location: str | None = None) -> list[Practice]:
        """List practices, optionally filtered by address or postcode substring."""
        pass

    @abstractmethod
    async def get_practice(self, practice_id: int) -> Practice | None:
        pass

    @abstractmethod
    async def get_practice_by_tag(self, connection_tag: str) -> Practice | None:
        pass

    @abstractmethod
    async def create_practice(self, **fields: Any) -> Practice:
        pass

    @abstractmethod
    async def list_dentists(self, practice_id: int | None = None) -> list[Dentist]:
        pass

    @abstractmethod
    async def get_dentist(self, dentist_id: int) -> Dentist | None:
        pass

    @abstractmethod
    async def create_dentist(self, **fields: Any) -> Dentist:
        pass

    @abstractmethod
    async def list_treatments(self, category: str | None = None) -> list[Treatment]:
        pass

    @abstractmethod
    async def get_treatment(self, treatment_id: int) -> Treatment | None:
        pass

    @abstractmethod
    async def create_treatment(self, **fields: Any) -> Treatment:
        pass

    # Appointment slots

    @abstractmethod
    async def get_appointment(self, appointment_id: int) -> Appointment | None:
        pass

    @abstractmethod
    async def list_available_appointments(
        self, practice_id: int, on_date: date | None = None
    ) -> list[Appointment]:
        """List available slots ordered by date then time."""
        pass

    @abstractmethod
    async def create_appointment(self, **fields: Any) -> Appointment:
        pass

    @abstractmethod
    async def reserve_appointment(self, appointment_id: int, user_id: int) -> Appointment:
        """Atomically move an available slot to booked for a user.

        Raises:
            NotFoundError: If the slot does not exist
            ConflictError: If the slot is not available
        """
        pass

    # Triage

    @abstractmethod
    async def get_triage_assessment(self, assessment_id: int) -> TriageAssessment | None:
        pass

    @abstractmethod
    async def list_user_triage_assessments(self, user_id: int) -> list[TriageAssessment]:
        pass

    # Bookings

    @abstractmethod
    async def create_booking(
        self,
        booking_fields: dict[str, Any],
        triage_fields: dict[str, Any] | None = None,
    ) -> Booking:
        """Insert a pending booking and its optional triage in one unit.

        Raises:
            NotFoundError: If the appointment or the user does not exist
            ConflictError: If the slot is not available or another open
                booking already holds it
        """
        pass

    @abstractmethod
    async def has_open_booking(self, appointment_id: int) -> bool:
        """Whether a pending or approved booking holds the slot."""
        pass

    @abstractmethod
    async def get_booking(self, booking_id: int) -> Booking | None:
        pass

    @abstractmethod
    async def approve_booking(
        self, booking_id: int, approver_id: int, approved_at: datetime
    ) -> Booking:
        """Approve a pending booking and book its slot in one unit.

        Raises:
            NotFoundError: If the booking does not exist
            InvalidStateError: If the booking is no longer pending
            ConflictError: If the slot is no longer available
        """
        pass

    @abstractmethod
    async def reject_booking(self, booking_id: int, approver_id: int) -> Booking:
        """Reject a pending booking, leaving its slot untouched.

        Raises:
            NotFoundError: If the booking does not exist
            InvalidStateError: If the booking is no longer pending
        """
        pass

    @abstractmethod
    async def list_practice_bookings(
        self, practice_id: int, status: BookingStatus
    ) -> list[PracticeBookingRecord]:
        pass

    @abstractmethod
    async def list_user_bookings(self, user_id: int) -> list[UserBookingRecord]:
        pass

    # Audit

    @abstractmethod
    async def create_audit_log(self, **fields: Any) -> AuditLog:
        pass

    @abstractmethod
    async def list_audit_logs(
        self,
        resource_type: str | None = None,
        resource_id: int | None = None,
        user_id: int | None = None,
        limit: int = 100,
    ) -> list[AuditLog]:
        """List audit entries, newest first."""
        pass


# Opens a unit of work and yields a Storage handle for it
StorageProvider = Callable[[], AsyncContextManager[Storage]]
