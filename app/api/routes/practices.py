"""Practice directory endpoints: practices, treatments and dentists."""

from fastapi import APIRouter, HTTPException, Query, status

from app.api.deps import StorageDep
from app.core.exceptions import NotFoundError
from app.models.practice import TreatmentCategory
from app.schemas.practice import (
    AppointmentResponse,
    DentistResponse,
    PracticeListingResponse,
    PracticeResponse,
    TreatmentResponse,
)
from app.services.practice import PracticeListing, PracticeService

router = APIRouter()


def _listing_response(listing: PracticeListing) -> PracticeListingResponse:
    return PracticeListingResponse(
        **PracticeResponse.model_validate(listing.practice).model_dump(),
        available_appointments=[
            AppointmentResponse.model_validate(a) for a in listing.available_appointments
        ],
        dentists=[DentistResponse.model_validate(d) for d in listing.dentists],
    )


@router.get(
    "/practices",
    response_model=list[PracticeListingResponse],
    summary="List practices",
    description="List practices with their available appointments and dentists",
)
async def list_practices(
    storage: StorageDep,
    location: str | None = Query(default=None, max_length=100),
) -> list[PracticeListingResponse]:
    """List practices, optionally filtered by address or postcode."""
    listings = await PracticeService(storage).list_practices(location)
    return [_listing_response(listing) for listing in listings]


@router.get(
    "/practices/{practice_id}",
    response_model=PracticeListingResponse,
    summary="Get practice",
)
async def get_practice(
    practice_id: int,
    storage: StorageDep,
) -> PracticeListingResponse:
    """Get a practice with its available appointments and dentists."""
    try:
        listing = await PracticeService(storage).get_practice(practice_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    return _listing_response(listing)


@router.get(
    "/treatments",
    response_model=list[TreatmentResponse],
    summary="List treatments",
)
async def list_treatments(
    storage: StorageDep,
    category: TreatmentCategory | None = None,
) -> list[TreatmentResponse]:
    """List treatments, optionally for one category."""
    treatments = await PracticeService(storage).list_treatments(category)
    return [TreatmentResponse.model_validate(t) for t in treatments]


@router.get(
    "/dentists",
    response_model=list[DentistResponse],
    summary="List dentists",
)
async def list_dentists(storage: StorageDep) -> list[DentistResponse]:
    dentists = await PracticeService(storage).list_dentists()
    return [DentistResponse.model_validate(d) for d in dentists]


@router.get(
    "/dentists/practice/{practice_id}",
    response_model=list[DentistResponse],
    summary="List a practice's dentists",
)
async def list_practice_dentists(
    practice_id: int,
    storage: StorageDep,
) -> list[DentistResponse]:
    dentists = await PracticeService(storage).list_dentists(practice_id)
    return [DentistResponse.model_validate(d) for d in dentists]


@router.get(
    "/dentists/{dentist_id}",
    response_model=DentistResponse,
    summary="Get dentist",
)
async def get_dentist(
    dentist_id: int,
    storage: StorageDep,
) -> DentistResponse:
    try:
        dentist = await PracticeService(storage).get_dentist(dentist_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    return DentistResponse.model_validate(dentist)
