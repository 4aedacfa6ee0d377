"""Appointment slot store."""

import logging
from datetime import date

from app.core.exceptions import AuthorizationError, NotFoundError
from app.models.appointment import Appointment, AppointmentStatus
from app.models.user import User
from app.schemas.practice import AppointmentCreate
from app.storage.base import Storage

logger = logging.getLogger(__name__)


class AppointmentService:
    """Service for listing, creating and reserving slots."""

    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    async def list_available(
        self,
        practice_id: int,
        on_date: date | None = None,
    ) -> list[Appointment]:
        """List a practice's available slots.

        Args:
            practice_id: Practice to list
            on_date: Restrict to this calendar day

        Returns:
            Slots ordered by date then time
        """
        return await self.storage.list_available_appointments(practice_id, on_date)

    async def get_appointment(self, appointment_id: int) -> Appointment:
        appointment = await self.storage.get_appointment(appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment not found")
        return appointment

    async def reserve_slot(self, appointment_id: int, user_id: int) -> Appointment:
        """Book a slot for a user.

        Raises:
            NotFoundError: If the slot does not exist
            ConflictError: If the slot is not available
        """
        appointment = await self.storage.reserve_appointment(appointment_id, user_id)
        logger.info(f"Reserved appointment {appointment_id} for user_id={user_id}")
        return appointment

    async def reserve_walk_in(
        self,
        practice_id: int,
        appointment_id: int,
        reserver: User,
        user_id: int,
    ) -> Appointment:
        """Book one of the practice's own slots directly, skipping approval.

        Raises:
            AuthorizationError: If the reserver does not work at the practice
            NotFoundError: If the slot is not at the practice or the user is unknown
            ConflictError: If the slot is not available
        """
        if reserver.practice_id != practice_id:
            raise AuthorizationError("Access denied to this practice")

        appointment = await self.storage.get_appointment(appointment_id)
        if appointment is None or appointment.practice_id != practice_id:
            raise NotFoundError("Appointment not found at this practice")
        if await self.storage.get_user(user_id) is None:
            raise NotFoundError("User not found")

        return await self.reserve_slot(appointment_id, user_id)

    async def create_slot(
        self,
        practice_id: int,
        creator: User,
        data: AppointmentCreate,
    ) -> Appointment:
        """Offer a new available slot at a practice.

        Raises:
            NotFoundError: If the practice, dentist or treatment is unknown
            AuthorizationError: If the creator does not work at the practice
        """
        if await self.storage.get_practice(practice_id) is None:
            raise NotFoundError("Practice not found")
        if creator.practice_id != practice_id:
            raise AuthorizationError("Access denied to this practice")

        if data.dentist_id is not None:
            dentist = await self.storage.get_dentist(data.dentist_id)
            if dentist is None or dentist.practice_id != practice_id:
                raise NotFoundError("Dentist not found at this practice")
        if data.treatment_id is not None:
            if await self.storage.get_treatment(data.treatment_id) is None:
                raise NotFoundError("Treatment not found")

        appointment = await self.storage.create_appointment(
            practice_id=practice_id,
            dentist_id=data.dentist_id,
            treatment_id=data.treatment_id,
            appointment_date=data.appointment_date,
            appointment_time=data.appointment_time,
            duration=data.duration,
            treatment_type=data.treatment_type,
            status=AppointmentStatus.AVAILABLE,
        )
        logger.info(
            f"Created appointment {appointment.id} at practice {practice_id} "
            f"on {appointment.appointment_date} {appointment.appointment_time}"
        )
        return appointment
