"""Appointment slot endpoints."""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from app.api.deps import CurrentDentist, StorageDep, audit_action, set_audit_resource
from app.core.exceptions import AuthorizationError, ConflictError, NotFoundError
from app.schemas.practice import AppointmentCreate, AppointmentReserve, AppointmentResponse
from app.services.appointments import AppointmentService

router = APIRouter()


@router.get(
    "/appointments/{practice_id}",
    response_model=list[AppointmentResponse],
    summary="List available appointments",
    description="Available slots at a practice, optionally for one calendar day",
)
async def list_available_appointments(
    practice_id: int,
    storage: StorageDep,
    on_date: date | None = Query(default=None, alias="date"),
) -> list[AppointmentResponse]:
    """List a practice's available slots ordered by date and time.

    Args:
        practice_id: Practice to list
        storage: Storage handle
        on_date: Optional calendar day, passed as ?date=YYYY-MM-DD

    Returns:
        Available slots
    """
    appointments = await AppointmentService(storage).list_available(practice_id, on_date)
    return [AppointmentResponse.model_validate(a) for a in appointments]


@router.post(
    "/practice/{practice_id}/appointments",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create appointment slot",
    dependencies=[Depends(audit_action("create", "appointment"))],
)
async def create_appointment(
    request: Request,
    practice_id: int,
    data: AppointmentCreate,
    dentist: CurrentDentist,
    storage: StorageDep,
) -> AppointmentResponse:
    """Offer a new available slot at the dentist's own practice.

    Raises:
        HTTPException: 403 for another practice, 404 for unknown references
    """
    try:
        appointment = await AppointmentService(storage).create_slot(
            practice_id, dentist, data
        )
    except AuthorizationError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)

    set_audit_resource(request, appointment.id)
    return AppointmentResponse.model_validate(appointment)


@router.post(
    "/practice/{practice_id}/appointments/{appointment_id}/reserve",
    response_model=AppointmentResponse,
    summary="Reserve appointment for a walk-in",
    description="Book a practice slot directly for a patient at the desk",
    dependencies=[Depends(audit_action("reserve", "appointment", "appointment_id"))],
)
async def reserve_appointment(
    practice_id: int,
    appointment_id: int,
    data: AppointmentReserve,
    dentist: CurrentDentist,
    storage: StorageDep,
) -> AppointmentResponse:
    """Reserve a slot without a booking request.

    A pending request for the same slot stays pending and can no longer
    be approved.

    Raises:
        HTTPException: 403 for another practice, 404 for an unknown slot or
            user, 409 when the slot is already taken
    """
    try:
        appointment = await AppointmentService(storage).reserve_walk_in(
            practice_id, appointment_id, dentist, data.user_id
        )
    except AuthorizationError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)

    return AppointmentResponse.model_validate(appointment)
