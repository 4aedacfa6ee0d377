"""In-memory storage backend.

For development without a database and for tests. State lives on the
instance, so each MemoryStorage is an isolated store.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Any, AsyncIterator, TypeVar

from app.core.exceptions import ConflictError, InvalidStateError, NotFoundError
from app.models import (
    OPEN_BOOKING_STATUSES,
    Appointment,
    AppointmentStatus,
    ApprovalStatus,
    AuditLog,
    Booking,
    BookingStatus,
    Dentist,
    Practice,
    Treatment,
    TriageAssessment,
    User,
    UserSession,
    UserType,
)
from app.storage.base import PracticeBookingRecord, Storage, UserBookingRecord
from app.utils.time import utc_now

ModelT = TypeVar("ModelT")

# Column defaults are applied by the ORM only on flush, so transient
# instances get them here.
_USER_DEFAULTS = {
    "user_type": UserType.PATIENT,
    "practice_id": None,
    "is_guest": False,
    "gdpr_consent_given": False,
    "gdpr_consent_date": None,
    "marketing_consent_given": False,
    "marketing_consent_date": None,
    "data_retention_date": None,
    "failed_login_attempts": 0,
    "locked_until": None,
    "updated_at": None,
}
_PRACTICE_DEFAULTS = {
    "review_count": 0,
    "wheelchair_access": False,
    "sign_language": False,
    "visual_support": False,
    "cognitive_support": False,
    "disabled_parking": False,
    "connection_tag": None,
}
_APPOINTMENT_DEFAULTS = {
    "dentist_id": None,
    "treatment_id": None,
    "user_id": None,
    "duration": 30,
    "treatment_type": None,
    "status": AppointmentStatus.AVAILABLE,
}
_TRIAGE_DEFAULTS = {
    "swelling": False,
    "trauma": False,
    "bleeding": False,
    "infection": False,
}
_BOOKING_DEFAULTS = {
    "triage_assessment_id": None,
    "medications": False,
    "allergies": False,
    "status": BookingStatus.PENDING_APPROVAL,
    "approval_status": ApprovalStatus.PENDING,
    "approved_by": None,
    "approved_at": None,
    "updated_at": None,
}


class MemoryStorage(Storage):
    """Dictionary-backed storage.

    Transitions that guard a slot run under one asyncio.Lock, so the
    check and the write cannot interleave with another request.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._ids: dict[str, int] = {}
        self.users: dict[int, User] = {}
        self.sessions: dict[str, UserSession] = {}
        self.practices: dict[int, Practice] = {}
        self.dentists: dict[int, Dentist] = {}
        self.treatments: dict[int, Treatment] = {}
        self.appointments: dict[int, Appointment] = {}
        self.triage_assessments: dict[int, TriageAssessment] = {}
        self.bookings: dict[int, Booking] = {}
        self.audit_logs: dict[int, AuditLog] = {}

    @asynccontextmanager
    async def scope(self) -> AsyncIterator["MemoryStorage"]:
        """Yield this store as a unit-of-work handle."""
        yield self

    def _insert(
        self,
        table: dict[int, ModelT],
        model: type[ModelT],
        defaults: dict[str, Any],
        fields: dict[str, Any],
        created_at: bool = True,
    ) -> ModelT:
        name = model.__tablename__
        self._ids[name] = self._ids.get(name, 0) + 1
        values = {**defaults, **fields, "id": self._ids[name]}
        if created_at:
            values.setdefault("created_at", utc_now())
        instance = model(**values)
        table[instance.id] = instance
        return instance

    # Users

    async def get_user(self, user_id: int) -> User | None:
        return self.users.get(user_id)

    async def get_user_by_email(self, email: str) -> User | None:
        email = email.lower()
        return next((u for u in self.users.values() if u.email == email), None)

    async def create_user(self, **fields: Any) -> User:
        fields["email"] = fields["email"].lower()
        async with self._lock:
            if await self.get_user_by_email(fields["email"]):
                raise ConflictError("User already exists")
            return self._insert(self.users, User, _USER_DEFAULTS, fields)

    async def update_user(self, user_id: int, **fields: Any) -> User:
        user = self.users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        for key, value in fields.items():
            setattr(user, key, value)
        user.updated_at = utc_now()
        return user

    # Sessions

    async def create_session(
        self, token: str, user_id: int, expires_at: datetime
    ) -> UserSession:
        session = UserSession(
            id=token, user_id=user_id, expires_at=expires_at, created_at=utc_now()
        )
        self.sessions[token] = session
        return session

    async def get_session(self, token: str) -> UserSession | None:
        return self.sessions.get(token)

    async def delete_session(self, token: str) -> None:
        self.sessions.pop(token, None)

    async def delete_user_sessions(self, user_id: int) -> None:
        for token in [t for t, s in self.sessions.items() if s.user_id == user_id]:
            del self.sessions[token]

    # Practice directory

    async def list_practices(self, location: str | None = None) -> list[Practice]:
        practices = sorted(self.practices.values(), key=lambda p: p.id)
        if location:
            needle = location.lower()
            practices = [
                p
                for p in practices
                if needle in (p.address or "").lower()
                or needle in (p.postcode or "").lower()
            ]
        return practices

    async def get_practice(self, practice_id: int) -> Practice | None:
        return self.practices.get(practice_id)

    async def get_practice_by_tag(self, connection_tag: str) -> Practice | None:
        return next(
            (p for p in self.practices.values() if p.connection_tag == connection_tag),
            None,
        )

    async def create_practice(self, **fields: Any) -> Practice:
        return self._insert(self.practices, Practice, _PRACTICE_DEFAULTS, fields)

    async def list_dentists(self, practice_id: int | None = None) -> list[Dentist]:
        return [
            d
            for d in sorted(self.dentists.values(), key=lambda d: d.id)
            if practice_id is None or d.practice_id == practice_id
        ]

    async def get_dentist(self, dentist_id: int) -> Dentist | None:
        return self.dentists.get(dentist_id)

    async def create_dentist(self, **fields: Any) -> Dentist:
        return self._insert(self.dentists, Dentist, {}, fields)

    async def list_treatments(self, category: str | None = None) -> list[Treatment]:
        return [
            t
            for t in sorted(self.treatments.values(), key=lambda t: t.id)
            if category is None or t.category == category
        ]

    async def get_treatment(self, treatment_id: int) -> Treatment | None:
        return self.treatments.get(treatment_id)

    async def create_treatment(self, **fields: Any) -> Treatment:
        return self._insert(self.treatments, Treatment, {}, fields, created_at=False)

    # Appointment slots

    async def get_appointment(self, appointment_id: int) -> Appointment | None:
        return self.appointments.get(appointment_id)

    async def list_available_appointments(
        self, practice_id: int, on_date: date | None = None
    ) -> list[Appointment]:
        slots = [
            a
            for a in self.appointments.values()
            if a.practice_id == practice_id
            and a.status == AppointmentStatus.AVAILABLE
            and (on_date is None or a.appointment_date == on_date)
        ]
        return sorted(slots, key=lambda a: (a.appointment_date, a.appointment_time))

    async def create_appointment(self, **fields: Any) -> Appointment:
        return self._insert(self.appointments, Appointment, _APPOINTMENT_DEFAULTS, fields)

    async def reserve_appointment(self, appointment_id: int, user_id: int) -> Appointment:
        async with self._lock:
            appointment = self.appointments.get(appointment_id)
            if appointment is None:
                raise NotFoundError("Appointment not found")
            if appointment.status != AppointmentStatus.AVAILABLE:
                raise ConflictError("Appointment is no longer available")
            appointment.status = AppointmentStatus.BOOKED
            appointment.user_id = user_id
            return appointment

    # Triage

    async def get_triage_assessment(self, assessment_id: int) -> TriageAssessment | None:
        return self.triage_assessments.get(assessment_id)

    async def list_user_triage_assessments(self, user_id: int) -> list[TriageAssessment]:
        return [t for t in self.triage_assessments.values() if t.user_id == user_id]

    # Bookings

    def _has_open_booking(self, appointment_id: int) -> bool:
        return any(
            b.appointment_id == appointment_id and b.status in OPEN_BOOKING_STATUSES
            for b in self.bookings.values()
        )

    async def create_booking(
        self,
        booking_fields: dict[str, Any],
        triage_fields: dict[str, Any] | None = None,
    ) -> Booking:
        async with self._lock:
            appointment = self.appointments.get(booking_fields["appointment_id"])
            if booking_fields["user_id"] not in self.users:
                raise NotFoundError("User not found")
            if appointment is None:
                raise NotFoundError("Appointment not found")
            if appointment.status != AppointmentStatus.AVAILABLE:
                raise ConflictError("Appointment is no longer available")
            if self._has_open_booking(appointment.id):
                raise ConflictError("Appointment already has an open booking")

            fields = dict(booking_fields)
            if triage_fields is not None:
                triage = self._insert(
                    self.triage_assessments,
                    TriageAssessment,
                    _TRIAGE_DEFAULTS,
                    triage_fields,
                )
                fields["triage_assessment_id"] = triage.id
            return self._insert(self.bookings, Booking, _BOOKING_DEFAULTS, fields)

    async def has_open_booking(self, appointment_id: int) -> bool:
        return self._has_open_booking(appointment_id)

    async def get_booking(self, booking_id: int) -> Booking | None:
        return self.bookings.get(booking_id)

    def _pending_booking(self, booking_id: int) -> Booking:
        booking = self.bookings.get(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found")
        if not booking.is_pending:
            raise InvalidStateError(
                f"Booking is already {BookingStatus(booking.status).value}"
            )
        return booking

    async def approve_booking(
        self, booking_id: int, approver_id: int, approved_at: datetime
    ) -> Booking:
        async with self._lock:
            booking = self._pending_booking(booking_id)
            appointment = self.appointments.get(booking.appointment_id)
            if appointment is None or appointment.status != AppointmentStatus.AVAILABLE:
                raise ConflictError("Appointment is no longer available")

            booking.status = BookingStatus.APPROVED
            booking.approval_status = ApprovalStatus.APPROVED
            booking.approved_by = approver_id
            booking.approved_at = approved_at
            booking.updated_at = approved_at
            appointment.status = AppointmentStatus.BOOKED
            appointment.user_id = booking.user_id
            return booking

    async def reject_booking(self, booking_id: int, approver_id: int) -> Booking:
        async with self._lock:
            booking = self._pending_booking(booking_id)
            booking.status = BookingStatus.REJECTED
            booking.approval_status = ApprovalStatus.REJECTED
            booking.approved_by = approver_id
            booking.updated_at = utc_now()
            return booking

    async def list_practice_bookings(
        self, practice_id: int, status: BookingStatus
    ) -> list[PracticeBookingRecord]:
        records = []
        for booking in sorted(self.bookings.values(), key=lambda b: b.id):
            appointment = self.appointments.get(booking.appointment_id)
            if (
                booking.status != status
                or appointment is None
                or appointment.practice_id != practice_id
            ):
                continue
            records.append(
                PracticeBookingRecord(
                    booking=booking,
                    appointment=appointment,
                    patient=self.users[booking.user_id],
                    treatment=self.treatments.get(appointment.treatment_id),
                    triage=self.triage_assessments.get(booking.triage_assessment_id),
                )
            )
        return records

    async def list_user_bookings(self, user_id: int) -> list[UserBookingRecord]:
        records = []
        for booking in sorted(self.bookings.values(), key=lambda b: b.id):
            if booking.user_id != user_id:
                continue
            appointment = self.appointments[booking.appointment_id]
            records.append(
                UserBookingRecord(
                    booking=booking,
                    appointment=appointment,
                    practice=self.practices[appointment.practice_id],
                    treatment=self.treatments.get(appointment.treatment_id),
                )
            )
        return records

    # Audit

    async def create_audit_log(self, **fields: Any) -> AuditLog:
        fields.setdefault("nhs_compliance", False)
        return self._insert(self.audit_logs, AuditLog, {}, fields)

    async def list_audit_logs(
        self,
        resource_type: str | None = None,
        resource_id: int | None = None,
        user_id: int | None = None,
        limit: int = 100,
    ) -> list[AuditLog]:
        entries = [
            e
            for e in sorted(self.audit_logs.values(), key=lambda e: e.id, reverse=True)
            if (resource_type is None or e.resource_type == resource_type)
            and (resource_id is None or e.resource_id == resource_id)
            and (user_id is None or e.user_id == user_id)
        ]
        return entries[:limit]
