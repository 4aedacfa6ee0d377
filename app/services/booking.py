"""Booking lifecycle: submission, approval and rejection.

A booking starts in pending_approval and moves exactly once to
approved or rejected. Approval books the slot in the same unit of work
as the status change; rejection leaves the slot available.
"""

import logging

from app.core.exceptions import AuthorizationError, NotFoundError
from app.models.booking import Booking, BookingStatus
from app.schemas.booking import BookingCreate
from app.storage.base import PracticeBookingRecord, Storage, UserBookingRecord
from app.services.triage import TriageService
from app.utils.time import utc_now

logger = logging.getLogger(__name__)


class BookingService:
    """Service for the booking state machine."""

    def __init__(self, storage: Storage) -> None:
        self.storage = storage
        self.triage = TriageService(storage)

    async def submit_booking(self, user_id: int, data: BookingCreate) -> Booking:
        """Submit a booking request for an available slot.

        The slot is not reserved here; only approval books it. A slot
        already held by an open booking cannot be requested again.

        Args:
            user_id: Patient making the request
            data: Booking details and optional triage

        Returns:
            Booking in pending_approval

        Raises:
            NotFoundError: If the appointment or the user does not exist
            ConflictError: If the slot is unavailable or already requested
        """
        booking_fields = {
            "user_id": user_id,
            "appointment_id": data.appointment_id,
            "treatment_category": data.treatment_category,
            "accessibility_needs": data.accessibility_needs,
            "medications": data.medications,
            "allergies": data.allergies,
            "last_dental_visit": data.last_dental_visit,
            "anxiety_level": data.anxiety_level,
            "special_requests": data.special_requests,
            "status": BookingStatus.PENDING_APPROVAL,
        }
        triage_fields = None
        if data.triage is not None:
            triage_fields = self.triage.create_assessment(
                data.triage, user_id, data.appointment_id
            )

        booking = await self.storage.create_booking(booking_fields, triage_fields)
        logger.info(
            f"Booking {booking.id} submitted for appointment {data.appointment_id} "
            f"by user_id={user_id}"
        )
        return booking

    async def get_booking(self, booking_id: int) -> Booking:
        booking = await self.storage.get_booking(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found")
        return booking

    async def _check_practice(self, booking: Booking, practice_id: int | None) -> None:
        if practice_id is None:
            return
        appointment = await self.storage.get_appointment(booking.appointment_id)
        if appointment is None or appointment.practice_id != practice_id:
            raise AuthorizationError("Booking belongs to another practice")

    async def approve_booking(
        self,
        booking_id: int,
        approver_id: int,
        practice_id: int | None = None,
    ) -> Booking:
        """Approve a pending booking and book its slot.

        Args:
            booking_id: Booking to approve
            approver_id: Dentist user approving it
            practice_id: When given, the booking's slot must belong here

        Raises:
            NotFoundError: If the booking does not exist
            AuthorizationError: If the booking belongs to another practice
            InvalidStateError: If the booking is not pending approval
            ConflictError: If the slot was booked in the meantime
        """
        booking = await self.get_booking(booking_id)
        await self._check_practice(booking, practice_id)

        booking = await self.storage.approve_booking(booking_id, approver_id, utc_now())
        logger.info(
            f"Booking {booking_id} approved by user_id={approver_id}, "
            f"appointment {booking.appointment_id} booked"
        )
        return booking

    async def reject_booking(
        self,
        booking_id: int,
        approver_id: int,
        practice_id: int | None = None,
    ) -> Booking:
        """Reject a pending booking. The slot stays available.

        Raises:
            NotFoundError: If the booking does not exist
            AuthorizationError: If the booking belongs to another practice
            InvalidStateError: If the booking is not pending approval
        """
        booking = await self.get_booking(booking_id)
        await self._check_practice(booking, practice_id)

        booking = await self.storage.reject_booking(booking_id, approver_id)
        logger.info(f"Booking {booking_id} rejected by user_id={approver_id}")
        return booking

    async def list_pending(self, practice_id: int) -> list[PracticeBookingRecord]:
        return await self.storage.list_practice_bookings(
            practice_id, BookingStatus.PENDING_APPROVAL
        )

    async def list_approved(self, practice_id: int) -> list[PracticeBookingRecord]:
        return await self.storage.list_practice_bookings(
            practice_id, BookingStatus.APPROVED
        )

    async def list_user_bookings(self, user_id: int) -> list[UserBookingRecord]:
        return await self.storage.list_user_bookings(user_id)
