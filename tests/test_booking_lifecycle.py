"""Tests for the booking state machine.

Every test runs against both the in-memory and the SQLite-backed
storage, so the two backends keep the same contract.
"""

import pytest

from app.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
)
from app.models import (
    Appointment,
    AppointmentStatus,
    ApprovalStatus,
    BookingStatus,
    Practice,
    User,
)
from app.schemas.booking import BookingCreate, TriageAssessmentCreate
from app.services.appointments import AppointmentService
from app.services.booking import BookingService
from app.storage.base import Storage

pytestmark = pytest.mark.parametrize("storage", ["memory", "database"], indirect=True)


def _booking_request(appointment_id: int, with_triage: bool = False) -> BookingCreate:
    triage = None
    if with_triage:
        triage = TriageAssessmentCreate(
            pain_level=7,
            pain_duration="3 days",
            symptoms="Throbbing pain in lower left molar",
            swelling=True,
            urgency_level="high",
            anxiety_level="moderate",
            medical_history="Type 2 diabetes",
            allergies="Penicillin",
            smoking_status="never",
        )
    return BookingCreate(
        appointment_id=appointment_id,
        treatment_category="urgent",
        accessibility_needs=["wheelchair"],
        medications=True,
        anxiety_level="nervous",
        special_requests="Morning appointments preferred",
        triage=triage,
    )


class TestSubmitBooking:
    """Tests for booking submission."""

    @pytest.mark.asyncio
    async def test_submit_creates_pending_booking(
        self, storage: Storage, appointment: Appointment, patient: User
    ) -> None:
        """Submitting leaves the slot available until a dentist approves."""
        booking = await BookingService(storage).submit_booking(
            patient.id, _booking_request(appointment.id)
        )

        assert booking.id is not None
        assert booking.user_id == patient.id
        assert booking.appointment_id == appointment.id
        assert booking.status == BookingStatus.PENDING_APPROVAL
        assert booking.approval_status == ApprovalStatus.PENDING
        assert booking.approved_by is None
        assert booking.accessibility_needs == ["wheelchair"]

        slot = await storage.get_appointment(appointment.id)
        assert slot.status == AppointmentStatus.AVAILABLE
        assert slot.user_id is None

    @pytest.mark.asyncio
    async def test_submit_with_triage_stores_assessment(
        self, storage: Storage, appointment: Appointment, patient: User
    ) -> None:
        booking = await BookingService(storage).submit_booking(
            patient.id, _booking_request(appointment.id, with_triage=True)
        )

        assert booking.triage_assessment_id is not None
        assessment = await storage.get_triage_assessment(booking.triage_assessment_id)
        assert assessment.user_id == patient.id
        assert assessment.appointment_id == appointment.id
        assert assessment.pain_level == 7
        assert assessment.urgency_level == "high"
        assert assessment.medical_history == "Type 2 diabetes"
        assert assessment.allergies == "Penicillin"

    @pytest.mark.asyncio
    async def test_submit_unknown_appointment(
        self, storage: Storage, patient: User
    ) -> None:
        with pytest.raises(NotFoundError):
            await BookingService(storage).submit_booking(
                patient.id, _booking_request(9999)
            )

    @pytest.mark.asyncio
    async def test_submit_for_unknown_user(
        self, storage: Storage, appointment: Appointment
    ) -> None:
        """A missing patient is reported as such, not as a slot conflict."""
        with pytest.raises(NotFoundError, match="User not found"):
            await BookingService(storage).submit_booking(
                9999, _booking_request(appointment.id)
            )

        assert await storage.has_open_booking(appointment.id) is False

    @pytest.mark.asyncio
    async def test_has_open_booking_follows_the_lifecycle(
        self,
        storage: Storage,
        appointment: Appointment,
        patient: User,
        dentist_user: User,
    ) -> None:
        appointment_id = appointment.id
        service = BookingService(storage)
        assert await storage.has_open_booking(appointment_id) is False

        booking = await service.submit_booking(patient.id, _booking_request(appointment_id))
        assert await storage.has_open_booking(appointment_id) is True

        await service.reject_booking(booking.id, dentist_user.id)
        assert await storage.has_open_booking(appointment_id) is False

    @pytest.mark.asyncio
    async def test_slot_with_open_booking_cannot_be_requested_again(
        self, storage: Storage, appointment: Appointment, patient: User
    ) -> None:
        """One open booking per slot; the second request conflicts."""
        patient_id = patient.id
        service = BookingService(storage)
        await service.submit_booking(patient.id, _booking_request(appointment.id))

        with pytest.raises(ConflictError):
            await service.submit_booking(
                patient.id, _booking_request(appointment.id, with_triage=True)
            )

        assert await storage.list_user_triage_assessments(patient_id) == []

    @pytest.mark.asyncio
    async def test_slot_is_requestable_again_after_rejection(
        self,
        storage: Storage,
        appointment: Appointment,
        patient: User,
        dentist_user: User,
    ) -> None:
        service = BookingService(storage)
        first = await service.submit_booking(patient.id, _booking_request(appointment.id))
        await service.reject_booking(first.id, dentist_user.id)

        second = await service.submit_booking(patient.id, _booking_request(appointment.id))

        assert second.id != first.id
        assert second.status == BookingStatus.PENDING_APPROVAL

    @pytest.mark.asyncio
    async def test_booked_slot_cannot_be_requested(
        self,
        storage: Storage,
        appointment: Appointment,
        patient: User,
        dentist_user: User,
    ) -> None:
        service = BookingService(storage)
        booking = await service.submit_booking(patient.id, _booking_request(appointment.id))
        await service.approve_booking(booking.id, dentist_user.id)

        with pytest.raises(ConflictError):
            await service.submit_booking(patient.id, _booking_request(appointment.id))


class TestDecideBooking:
    """Tests for approval and rejection."""

    @pytest.mark.asyncio
    async def test_approve_books_the_slot(
        self,
        storage: Storage,
        appointment: Appointment,
        patient: User,
        dentist_user: User,
    ) -> None:
        service = BookingService(storage)
        booking = await service.submit_booking(patient.id, _booking_request(appointment.id))

        approved = await service.approve_booking(
            booking.id, dentist_user.id, practice_id=dentist_user.practice_id
        )

        assert approved.status == BookingStatus.APPROVED
        assert approved.approval_status == ApprovalStatus.APPROVED
        assert approved.approved_by == dentist_user.id
        assert approved.approved_at is not None

        slot = await storage.get_appointment(appointment.id)
        assert slot.status == AppointmentStatus.BOOKED
        assert slot.user_id == patient.id

    @pytest.mark.asyncio
    async def test_reject_leaves_slot_available(
        self,
        storage: Storage,
        appointment: Appointment,
        patient: User,
        dentist_user: User,
    ) -> None:
        service = BookingService(storage)
        booking = await service.submit_booking(patient.id, _booking_request(appointment.id))

        rejected = await service.reject_booking(booking.id, dentist_user.id)

        assert rejected.status == BookingStatus.REJECTED
        assert rejected.approval_status == ApprovalStatus.REJECTED
        assert rejected.approved_by == dentist_user.id
        assert rejected.approved_at is None

        slot = await storage.get_appointment(appointment.id)
        assert slot.status == AppointmentStatus.AVAILABLE
        assert slot.user_id is None

    @pytest.mark.asyncio
    async def test_approving_rejected_booking_fails(
        self,
        storage: Storage,
        appointment: Appointment,
        patient: User,
        dentist_user: User,
    ) -> None:
        """A decided booking never changes again."""
        service = BookingService(storage)
        booking = await service.submit_booking(patient.id, _booking_request(appointment.id))
        booking_id, appointment_id = booking.id, appointment.id
        await service.reject_booking(booking_id, dentist_user.id)

        with pytest.raises(InvalidStateError):
            await service.approve_booking(booking_id, dentist_user.id)

        unchanged = await storage.get_booking(booking_id)
        assert unchanged.status == BookingStatus.REJECTED
        assert unchanged.approval_status == ApprovalStatus.REJECTED
        assert unchanged.approved_at is None
        slot = await storage.get_appointment(appointment_id)
        assert slot.status == AppointmentStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_rejecting_approved_booking_fails(
        self,
        storage: Storage,
        appointment: Appointment,
        patient: User,
        dentist_user: User,
    ) -> None:
        service = BookingService(storage)
        booking = await service.submit_booking(patient.id, _booking_request(appointment.id))
        booking_id, appointment_id = booking.id, appointment.id
        await service.approve_booking(booking.id, dentist_user.id)

        with pytest.raises(InvalidStateError):
            await service.reject_booking(booking.id, dentist_user.id)

        unchanged = await storage.get_booking(booking_id)
        assert unchanged.status == BookingStatus.APPROVED
        slot = await storage.get_appointment(appointment_id)
        assert slot.status == AppointmentStatus.BOOKED

    @pytest.mark.asyncio
    async def test_approving_twice_fails(
        self,
        storage: Storage,
        appointment: Appointment,
        patient: User,
        dentist_user: User,
    ) -> None:
        service = BookingService(storage)
        booking = await service.submit_booking(patient.id, _booking_request(appointment.id))
        await service.approve_booking(booking.id, dentist_user.id)

        with pytest.raises(InvalidStateError):
            await service.approve_booking(booking.id, dentist_user.id)

    @pytest.mark.asyncio
    async def test_other_practice_cannot_decide(
        self,
        storage: Storage,
        appointment: Appointment,
        patient: User,
        other_dentist_user: User,
        other_practice: Practice,
    ) -> None:
        service = BookingService(storage)
        booking = await service.submit_booking(patient.id, _booking_request(appointment.id))

        with pytest.raises(AuthorizationError):
            await service.approve_booking(
                booking.id, other_dentist_user.id, practice_id=other_practice.id
            )
        with pytest.raises(AuthorizationError):
            await service.reject_booking(
                booking.id, other_dentist_user.id, practice_id=other_practice.id
            )

        still_pending = await storage.get_booking(booking.id)
        assert still_pending.status == BookingStatus.PENDING_APPROVAL

    @pytest.mark.asyncio
    async def test_unknown_booking(self, storage: Storage, dentist_user: User) -> None:
        service = BookingService(storage)

        with pytest.raises(NotFoundError):
            await service.approve_booking(424242, dentist_user.id)
        with pytest.raises(NotFoundError):
            await service.reject_booking(424242, dentist_user.id)


class TestBookingQueries:
    """Tests for practice and patient booking lists."""

    @pytest.mark.asyncio
    async def test_pending_and_approved_lists(
        self,
        storage: Storage,
        practice: Practice,
        appointment: Appointment,
        patient: User,
        dentist_user: User,
    ) -> None:
        service = BookingService(storage)
        booking = await service.submit_booking(
            patient.id, _booking_request(appointment.id, with_triage=True)
        )

        pending = await service.list_pending(practice.id)
        assert [r.booking.id for r in pending] == [booking.id]
        record = pending[0]
        assert record.patient.id == patient.id
        assert record.appointment.id == appointment.id
        assert record.treatment.name == "Check-up"
        assert record.triage.pain_level == 7
        assert await service.list_approved(practice.id) == []

        await service.approve_booking(booking.id, dentist_user.id)

        assert await service.list_pending(practice.id) == []
        approved = await service.list_approved(practice.id)
        assert [r.booking.id for r in approved] == [booking.id]

    @pytest.mark.asyncio
    async def test_practice_lists_exclude_other_practices(
        self,
        storage: Storage,
        appointment: Appointment,
        patient: User,
        other_practice: Practice,
    ) -> None:
        service = BookingService(storage)
        await service.submit_booking(patient.id, _booking_request(appointment.id))

        assert await service.list_pending(other_practice.id) == []

    @pytest.mark.asyncio
    async def test_user_bookings_include_practice(
        self,
        storage: Storage,
        practice: Practice,
        appointment: Appointment,
        patient: User,
    ) -> None:
        service = BookingService(storage)
        booking = await service.submit_booking(patient.id, _booking_request(appointment.id))

        records = await service.list_user_bookings(patient.id)

        assert len(records) == 1
        assert records[0].booking.id == booking.id
        assert records[0].practice.id == practice.id
        assert records[0].appointment.appointment_time == "09:00"


class TestSlotReservation:
    """Tests for direct slot reservation and its interaction with approval."""

    @pytest.mark.asyncio
    async def test_reserve_slot(
        self, storage: Storage, appointment: Appointment, patient: User
    ) -> None:
        reserved = await AppointmentService(storage).reserve_slot(
            appointment.id, patient.id
        )

        assert reserved.status == AppointmentStatus.BOOKED
        assert reserved.user_id == patient.id

    @pytest.mark.asyncio
    async def test_reserve_unavailable_slot_conflicts(
        self, storage: Storage, appointment: Appointment, patient: User
    ) -> None:
        appointment_id, patient_id = appointment.id, patient.id
        service = AppointmentService(storage)
        await service.reserve_slot(appointment_id, patient_id)

        with pytest.raises(ConflictError):
            await service.reserve_slot(appointment_id, patient_id)

    @pytest.mark.asyncio
    async def test_reserve_unknown_slot(self, storage: Storage, patient: User) -> None:
        with pytest.raises(NotFoundError):
            await AppointmentService(storage).reserve_slot(9999, patient.id)

    @pytest.mark.asyncio
    async def test_approval_fails_when_slot_was_taken(
        self,
        storage: Storage,
        appointment: Appointment,
        patient: User,
        dentist_user: User,
    ) -> None:
        """Approval never double-books; the booking stays pending."""
        appointment_id, dentist_id = appointment.id, dentist_user.id
        booking = await BookingService(storage).submit_booking(
            patient.id, _booking_request(appointment_id)
        )
        booking_id = booking.id
        walk_in = await storage.create_user(
            email="walk-in@example.com", password_hash="x", first_name="Walk"
        )
        await AppointmentService(storage).reserve_slot(appointment_id, walk_in.id)

        with pytest.raises(ConflictError):
            await BookingService(storage).approve_booking(booking_id, dentist_id)

        still_pending = await storage.get_booking(booking_id)
        assert still_pending.status == BookingStatus.PENDING_APPROVAL
        assert still_pending.approved_by is None
