"""Triage assessment store.

Assessments are written once, together with the booking that owns
them, and are only ever read back through that booking.
"""

from typing import Any

from app.core.exceptions import AuthorizationError, NotFoundError
from app.models.booking import Booking
from app.models.triage import TriageAssessment
from app.models.user import User
from app.schemas.booking import TriageAssessmentCreate
from app.storage.base import Storage


class TriageService:
    """Service for creating and reading triage assessments."""

    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    def create_assessment(
        self,
        data: TriageAssessmentCreate,
        user_id: int,
        appointment_id: int,
    ) -> dict[str, Any]:
        """Build the insert for an assessment.

        The row itself is written by the booking submission so both
        land in the same transaction.
        """
        return {
            **data.model_dump(),
            "user_id": user_id,
            "appointment_id": appointment_id,
        }

    async def get_for_booking(self, booking: Booking, viewer: User) -> TriageAssessment:
        """Read the assessment attached to a booking.

        Only the booking's patient and dentists of the booked practice
        may read it.

        Raises:
            AuthorizationError: If the viewer may not see this booking
            NotFoundError: If the booking has no assessment
        """
        if viewer.id != booking.user_id:
            appointment = await self.storage.get_appointment(booking.appointment_id)
            if not (
                viewer.is_dentist
                and appointment is not None
                and viewer.practice_id == appointment.practice_id
            ):
                raise AuthorizationError("Access denied to this booking")

        if booking.triage_assessment_id is None:
            raise NotFoundError("Booking has no triage assessment")

        assessment = await self.storage.get_triage_assessment(booking.triage_assessment_id)
        if assessment is None:
            raise NotFoundError("Triage assessment not found")
        return assessment
