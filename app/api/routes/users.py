"""User-scoped endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import ConsentedUser, StorageDep, audit_action
from app.schemas.booking import BookingResponse, UserBookingResponse
from app.schemas.practice import AppointmentResponse, PracticeResponse, TreatmentResponse
from app.services.booking import BookingService

router = APIRouter()


@router.get(
    "/{user_id}/bookings",
    response_model=list[UserBookingResponse],
    summary="A user's bookings",
    dependencies=[Depends(audit_action("view", "user", "user_id"))],
)
async def list_user_bookings(
    user_id: int,
    user: ConsentedUser,
    storage: StorageDep,
) -> list[UserBookingResponse]:
    """List a user's own bookings with appointment and practice details.

    Raises:
        HTTPException: 403 for anyone other than the user
    """
    if user.id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied to this user's bookings",
        )

    records = await BookingService(storage).list_user_bookings(user_id)
    return [
        UserBookingResponse(
            booking=BookingResponse.model_validate(r.booking),
            appointment=AppointmentResponse.model_validate(r.appointment),
            practice=PracticeResponse.model_validate(r.practice),
            treatment=(
                TreatmentResponse.model_validate(r.treatment) if r.treatment else None
            ),
        )
        for r in records
    ]
