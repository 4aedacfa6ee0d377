"""SQLAlchemy-backed storage.

Slot-guarding transitions are conditional UPDATEs checked by row count
inside one transaction, so two requests racing for the same booking or
slot cannot both win.
"""

from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Any, AsyncIterator

from sqlalchemy import exists, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, InvalidStateError, NotFoundError
from app.db.session import AsyncSessionLocal
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
)
from app.storage.base import PracticeBookingRecord, Storage, UserBookingRecord
from app.utils.time import utc_now


class DatabaseStorage(Storage):
    """Storage bound to one AsyncSession."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _add(self, instance):
        self.session.add(instance)
        await self.session.commit()
        await self.session.refresh(instance)
        return instance

    # Users

    async def get_user(self, user_id: int) -> User | None:
        return await self.session.get(User, user_id)

    async def get_user_by_email(self, email: str) -> User | None:
        result = await self.session.execute(
            select(User).where(User.email == email.lower())
        )
        return result.scalar_one_or_none()

    async def create_user(self, **fields: Any) -> User:
        fields["email"] = fields["email"].lower()
        try:
            return await self._add(User(**fields))
        except IntegrityError as exc:
            await self.session.rollback()
            raise ConflictError("User already exists") from exc

    async def update_user(self, user_id: int, **fields: Any) -> User:
        user = await self.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")
        for key, value in fields.items():
            setattr(user, key, value)
        await self.session.commit()
        await self.session.refresh(user)
        return user

    # Sessions

    async def create_session(
        self, token: str, user_id: int, expires_at: datetime
    ) -> UserSession:
        return await self._add(
            UserSession(id=token, user_id=user_id, expires_at=expires_at)
        )

    async def get_session(self, token: str) -> UserSession | None:
        return await self.session.get(UserSession, token)

    async def delete_session(self, token: str) -> None:
        session = await self.get_session(token)
        if session is not None:
            await self.session.delete(session)
            await self.session.commit()

    async def delete_user_sessions(self, user_id: int) -> None:
        result = await self.session.execute(
            select(UserSession).where(UserSession.user_id == user_id)
        )
        for session in result.scalars().all():
            await self.session.delete(session)
        await self.session.commit()

    # Practice directory

    async def list_practices(self, location: str | None = None) -> list[Practice]:
        query = select(Practice).order_by(Practice.id)
        if location:
            pattern = f"%{location}%"
            query = query.where(
                Practice.address.ilike(pattern) | Practice.postcode.ilike(pattern)
            )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_practice(self, practice_id: int) -> Practice | None:
        return await self.session.get(Practice, practice_id)

    async def get_practice_by_tag(self, connection_tag: str) -> Practice | None:
        result = await self.session.execute(
            select(Practice).where(Practice.connection_tag == connection_tag)
        )
        return result.scalar_one_or_none()

    async def create_practice(self, **fields: Any) -> Practice:
        return await self._add(Practice(**fields))

    async def list_dentists(self, practice_id: int | None = None) -> list[Dentist]:
        query = select(Dentist).order_by(Dentist.id)
        if practice_id is not None:
            query = query.where(Dentist.practice_id == practice_id)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_dentist(self, dentist_id: int) -> Dentist | None:
        return await self.session.get(Dentist, dentist_id)

    async def create_dentist(self, **fields: Any) -> Dentist:
        return await self._add(Dentist(**fields))

    async def list_treatments(self, category: str | None = None) -> list[Treatment]:
        query = select(Treatment).order_by(Treatment.id)
        if category is not None:
            query = query.where(Treatment.category == category)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_treatment(self, treatment_id: int) -> Treatment | None:
        return await self.session.get(Treatment, treatment_id)

    async def create_treatment(self, **fields: Any) -> Treatment:
        return await self._add(Treatment(**fields))

    # Appointment slots

    async def get_appointment(self, appointment_id: int) -> Appointment | None:
        return await self.session.get(Appointment, appointment_id)

    async def list_available_appointments(
        self, practice_id: int, on_date: date | None = None
    ) -> list[Appointment]:
        query = (
            select(Appointment)
            .where(Appointment.practice_id == practice_id)
            .where(Appointment.status == AppointmentStatus.AVAILABLE)
            .order_by(Appointment.appointment_date, Appointment.appointment_time)
        )
        if on_date is not None:
            query = query.where(Appointment.appointment_date == on_date)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def create_appointment(self, **fields: Any) -> Appointment:
        return await self._add(Appointment(**fields))

    async def _book_slot(self, appointment_id: int, user_id: int) -> bool:
        result = await self.session.execute(
            update(Appointment)
            .where(Appointment.id == appointment_id)
            .where(Appointment.status == AppointmentStatus.AVAILABLE)
            .values(status=AppointmentStatus.BOOKED, user_id=user_id)
        )
        return result.rowcount == 1

    async def reserve_appointment(self, appointment_id: int, user_id: int) -> Appointment:
        if not await self._book_slot(appointment_id, user_id):
            await self.session.rollback()
            if await self.get_appointment(appointment_id) is None:
                raise NotFoundError("Appointment not found")
            raise ConflictError("Appointment is no longer available")
        await self.session.commit()
        appointment = await self.get_appointment(appointment_id)
        await self.session.refresh(appointment)
        return appointment

    # Triage

    async def get_triage_assessment(self, assessment_id: int) -> TriageAssessment | None:
        return await self.session.get(TriageAssessment, assessment_id)

    async def list_user_triage_assessments(self, user_id: int) -> list[TriageAssessment]:
        result = await self.session.execute(
            select(TriageAssessment)
            .where(TriageAssessment.user_id == user_id)
            .order_by(TriageAssessment.id)
        )
        return list(result.scalars().all())

    # Bookings

    async def create_booking(
        self,
        booking_fields: dict[str, Any],
        triage_fields: dict[str, Any] | None = None,
    ) -> Booking:
        appointment_id = booking_fields["appointment_id"]
        try:
            appointment = await self.get_appointment(appointment_id)
            if appointment is None:
                raise NotFoundError("Appointment not found")
            if await self.get_user(booking_fields["user_id"]) is None:
                raise NotFoundError("User not found")
            if appointment.status != AppointmentStatus.AVAILABLE:
                raise ConflictError("Appointment is no longer available")
            if await self.has_open_booking(appointment_id):
                raise ConflictError("Appointment already has an open booking")

            fields = dict(booking_fields)
            if triage_fields is not None:
                triage = TriageAssessment(**triage_fields)
                self.session.add(triage)
                await self.session.flush()
                fields["triage_assessment_id"] = triage.id

            booking = Booking(**fields)
            self.session.add(booking)
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            # Only a lost race on the open booking index maps to a conflict
            if not await self.has_open_booking(appointment_id):
                raise
            raise ConflictError("Appointment already has an open booking") from exc
        except (NotFoundError, ConflictError):
            await self.session.rollback()
            raise

        await self.session.refresh(booking)
        return booking

    async def has_open_booking(self, appointment_id: int) -> bool:
        return bool(
            await self.session.scalar(
                select(
                    exists()
                    .where(Booking.appointment_id == appointment_id)
                    .where(Booking.status.in_(OPEN_BOOKING_STATUSES))
                )
            )
        )

    async def get_booking(self, booking_id: int) -> Booking | None:
        return await self.session.get(Booking, booking_id)

    async def _require_booking(self, booking_id: int) -> Booking:
        booking = await self.get_booking(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found")
        return booking

    async def _decide(self, booking_id: int, **values: Any) -> bool:
        result = await self.session.execute(
            update(Booking)
            .where(Booking.id == booking_id)
            .where(Booking.status == BookingStatus.PENDING_APPROVAL)
            .values(updated_at=utc_now(), **values)
        )
        return result.rowcount == 1

    async def approve_booking(
        self, booking_id: int, approver_id: int, approved_at: datetime
    ) -> Booking:
        booking = await self._require_booking(booking_id)

        if not await self._decide(
            booking_id,
            status=BookingStatus.APPROVED,
            approval_status=ApprovalStatus.APPROVED,
            approved_by=approver_id,
            approved_at=approved_at,
        ):
            await self.session.rollback()
            raise InvalidStateError("Booking is no longer pending approval")

        if not await self._book_slot(booking.appointment_id, booking.user_id):
            await self.session.rollback()
            raise ConflictError("Appointment is no longer available")

        await self.session.commit()
        await self.session.refresh(booking)
        return booking

    async def reject_booking(self, booking_id: int, approver_id: int) -> Booking:
        booking = await self._require_booking(booking_id)

        if not await self._decide(
            booking_id,
            status=BookingStatus.REJECTED,
            approval_status=ApprovalStatus.REJECTED,
            approved_by=approver_id,
        ):
            await self.session.rollback()
            raise InvalidStateError("Booking is no longer pending approval")

        await self.session.commit()
        await self.session.refresh(booking)
        return booking

    async def list_practice_bookings(
        self, practice_id: int, status: BookingStatus
    ) -> list[PracticeBookingRecord]:
        result = await self.session.execute(
            select(Booking, Appointment, User, Treatment, TriageAssessment)
            .join(Appointment, Booking.appointment_id == Appointment.id)
            .join(User, Booking.user_id == User.id)
            .outerjoin(Treatment, Appointment.treatment_id == Treatment.id)
            .outerjoin(
                TriageAssessment, Booking.triage_assessment_id == TriageAssessment.id
            )
            .where(Appointment.practice_id == practice_id)
            .where(Booking.status == status)
            .order_by(Booking.id)
        )
        return [
            PracticeBookingRecord(
                booking=booking,
                appointment=appointment,
                patient=patient,
                treatment=treatment,
                triage=triage,
            )
            for booking, appointment, patient, treatment, triage in result.all()
        ]

    async def list_user_bookings(self, user_id: int) -> list[UserBookingRecord]:
        result = await self.session.execute(
            select(Booking, Appointment, Practice, Treatment)
            .join(Appointment, Booking.appointment_id == Appointment.id)
            .join(Practice, Appointment.practice_id == Practice.id)
            .outerjoin(Treatment, Appointment.treatment_id == Treatment.id)
            .where(Booking.user_id == user_id)
            .order_by(Booking.id)
        )
        return [
            UserBookingRecord(
                booking=booking,
                appointment=appointment,
                practice=practice,
                treatment=treatment,
            )
            for booking, appointment, practice, treatment in result.all()
        ]

    # Audit

    async def create_audit_log(self, **fields: Any) -> AuditLog:
        return await self._add(AuditLog(**fields))

    async def list_audit_logs(
        self,
        resource_type: str | None = None,
        resource_id: int | None = None,
        user_id: int | None = None,
        limit: int = 100,
    ) -> list[AuditLog]:
        query = select(AuditLog).order_by(AuditLog.id.desc())
        if resource_type is not None:
            query = query.where(AuditLog.resource_type == resource_type)
        if resource_id is not None:
            query = query.where(AuditLog.resource_id == resource_id)
        if user_id is not None:
            query = query.where(AuditLog.user_id == user_id)
        result = await self.session.execute(query.limit(limit))
        return list(result.scalars().all())


@asynccontextmanager
async def database_storage() -> AsyncIterator[DatabaseStorage]:
    """Open a session-scoped DatabaseStorage."""
    async with AsyncSessionLocal() as session:
        try:
            yield DatabaseStorage(session)
        except Exception:
            await session.rollback()
            raise
