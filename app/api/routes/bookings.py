"""Booking lifecycle endpoints.

Patients submit booking requests; dentists of the booked practice
approve or reject them.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.api.deps import (
    CurrentDentist,
    CurrentUser,
    OptionalUser,
    StorageDep,
    audit_action,
    set_audit_resource,
)
from app.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
)
from app.models.user import User
from app.schemas.audit_log import AuditLogRead
from app.schemas.booking import (
    BookingCreate,
    BookingResponse,
    PatientContact,
    PracticeBookingResponse,
    TriageAssessmentResponse,
)
from app.schemas.practice import TreatmentResponse
from app.services.appointments import AppointmentService
from app.services.audit import AuditService
from app.services.auth import AuthService
from app.services.booking import BookingService
from app.storage.base import PracticeBookingRecord

router = APIRouter()


def _practice_booking_response(record: PracticeBookingRecord) -> PracticeBookingResponse:
    return PracticeBookingResponse(
        booking=BookingResponse.model_validate(record.booking),
        appointment_date=record.appointment.appointment_date,
        appointment_time=record.appointment.appointment_time,
        appointment_status=record.appointment.status,
        treatment=(
            TreatmentResponse.model_validate(record.treatment)
            if record.treatment
            else None
        ),
        patient=PatientContact.model_validate(record.patient),
        triage=(
            TriageAssessmentResponse.model_validate(record.triage)
            if record.triage
            else None
        ),
    )


@router.post(
    "/bookings",
    response_model=BookingResponse,
    status_code=status.HTTP_200_OK,
    summary="Submit booking",
    description="Request an available appointment; the practice approves or rejects it",
    dependencies=[Depends(audit_action("create", "booking"))],
)
async def submit_booking(
    request: Request,
    data: BookingCreate,
    user: OptionalUser,
    storage: StorageDep,
) -> BookingResponse:
    """Submit a booking request.

    Signed-in users book for themselves. Without a session the request
    may name an existing user_id, or a guest account is created from the
    contact fields.

    Raises:
        HTTPException: 403 when booking for someone else, 404 for unknown
            appointment or user, 409 when the slot is unavailable
    """
    booking_service = BookingService(storage)

    try:
        # Fail before creating a guest account for a slot that cannot be booked
        appointment = await AppointmentService(storage).get_appointment(data.appointment_id)
        if not appointment.is_available:
            raise ConflictError("Appointment is no longer available")
        if await storage.has_open_booking(appointment.id):
            raise ConflictError("Appointment already has an open booking")

        if user is not None:
            if data.user_id is not None and data.user_id != user.id:
                raise AuthorizationError("Cannot book on behalf of another user")
            user_id = user.id
        elif data.user_id is not None:
            if await storage.get_user(data.user_id) is None:
                raise NotFoundError("User not found")
            user_id = data.user_id
        else:
            guest = await AuthService(storage).create_guest(
                email=data.email,
                first_name=data.first_name,
                last_name=data.last_name,
                phone=data.phone,
            )
            user_id = guest.id

        booking = await booking_service.submit_booking(user_id, data)
    except AuthorizationError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)

    set_audit_resource(request, booking.id)
    return BookingResponse.model_validate(booking)


@router.post(
    "/bookings/{booking_id}/approve",
    response_model=BookingResponse,
    summary="Approve booking",
    description="Approve a pending booking and book its appointment",
    dependencies=[Depends(audit_action("approve", "booking", "booking_id"))],
)
async def approve_booking(
    booking_id: int,
    dentist: CurrentDentist,
    storage: StorageDep,
) -> BookingResponse:
    """Approve a pending booking.

    Raises:
        HTTPException: 403 for another practice's booking, 404 if missing,
            409 if the booking was already decided or the slot is taken
    """
    try:
        booking = await BookingService(storage).approve_booking(
            booking_id, dentist.id, practice_id=dentist.practice_id
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except AuthorizationError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    except (InvalidStateError, ConflictError) as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)

    return BookingResponse.model_validate(booking)


@router.post(
    "/bookings/{booking_id}/reject",
    response_model=BookingResponse,
    summary="Reject booking",
    description="Reject a pending booking; the appointment stays available",
    dependencies=[Depends(audit_action("reject", "booking", "booking_id"))],
)
async def reject_booking(
    booking_id: int,
    dentist: CurrentDentist,
    storage: StorageDep,
) -> BookingResponse:
    """Reject a pending booking.

    Raises:
        HTTPException: 403 for another practice's booking, 404 if missing,
            409 if the booking was already decided
    """
    try:
        booking = await BookingService(storage).reject_booking(
            booking_id, dentist.id, practice_id=dentist.practice_id
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except AuthorizationError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    except InvalidStateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)

    return BookingResponse.model_validate(booking)


@router.get(
    "/bookings/{booking_id}/triage-assessment",
    response_model=TriageAssessmentResponse,
    summary="Get a booking's triage assessment",
    dependencies=[Depends(audit_action("view", "triage_assessment"))],
)
async def get_booking_triage(
    request: Request,
    booking_id: int,
    user: CurrentUser,
    storage: StorageDep,
) -> TriageAssessmentResponse:
    """Read the triage assessment attached to a booking.

    Only the booking's patient and dentists of its practice may read it.
    """
    booking_service = BookingService(storage)
    try:
        booking = await booking_service.get_booking(booking_id)
        assessment = await booking_service.triage.get_for_booking(booking, user)
    except AuthorizationError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)

    set_audit_resource(request, assessment.id)
    return TriageAssessmentResponse.model_validate(assessment)


@router.get(
    "/bookings/{booking_id}/audit-trail",
    response_model=list[AuditLogRead],
    summary="Booking audit trail",
)
async def get_booking_audit_trail(
    booking_id: int,
    dentist: CurrentDentist,
    storage: StorageDep,
) -> list[AuditLogRead]:
    """List audit entries recorded against a booking, newest first."""
    booking_service = BookingService(storage)
    try:
        booking = await booking_service.get_booking(booking_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)

    appointment = await storage.get_appointment(booking.appointment_id)
    if appointment is None or appointment.practice_id != dentist.practice_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Booking belongs to another practice",
        )

    entries = await AuditService(storage).get_resource_history("booking", booking_id)
    return [AuditLogRead.model_validate(e) for e in entries]


def _require_own_practice(dentist: User, practice_id: int) -> None:
    if dentist.practice_id != practice_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied to this practice",
        )


@router.get(
    "/practice/{practice_id}/pending-bookings",
    response_model=list[PracticeBookingResponse],
    summary="Pending bookings",
    dependencies=[Depends(audit_action("view", "practice", "practice_id"))],
)
async def list_pending_bookings(
    practice_id: int,
    dentist: CurrentDentist,
    storage: StorageDep,
) -> list[PracticeBookingResponse]:
    """List bookings awaiting the practice's decision."""
    _require_own_practice(dentist, practice_id)
    records = await BookingService(storage).list_pending(practice_id)
    return [_practice_booking_response(r) for r in records]


@router.get(
    "/practice/{practice_id}/approved-bookings",
    response_model=list[PracticeBookingResponse],
    summary="Approved bookings",
    dependencies=[Depends(audit_action("view", "practice", "practice_id"))],
)
async def list_approved_bookings(
    practice_id: int,
    dentist: CurrentDentist,
    storage: StorageDep,
) -> list[PracticeBookingResponse]:
    """List the practice's approved bookings."""
    _require_own_practice(dentist, practice_id)
    records = await BookingService(storage).list_approved(practice_id)
    return [_practice_booking_response(r) for r in records]
