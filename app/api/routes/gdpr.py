"""GDPR endpoints: consent, data export and erasure."""

from fastapi import APIRouter, Depends, status

from app.api.deps import CurrentUser, StorageDep, audit_action
from app.schemas.gdpr import ConsentCapture, ConsentStatus, DataExport, ErasureResponse
from app.services.gdpr import GDPRService
from app.utils.time import utc_now

router = APIRouter()


@router.get(
    "/consent",
    response_model=ConsentStatus,
    summary="Get consent status",
)
async def get_consent(user: CurrentUser) -> ConsentStatus:
    return ConsentStatus.model_validate(user)


@router.post(
    "/consent",
    response_model=ConsentStatus,
    status_code=status.HTTP_200_OK,
    summary="Record consent",
    dependencies=[Depends(audit_action("consent_update", "gdpr"))],
)
async def record_consent(
    data: ConsentCapture,
    user: CurrentUser,
    storage: StorageDep,
) -> ConsentStatus:
    """Record data processing and marketing consent.

    Giving consent starts a new retention period.
    """
    updated = await GDPRService(storage).record_consent(
        user, data.gdpr_consent, data.marketing_consent
    )
    return ConsentStatus.model_validate(updated)


@router.get(
    "/export",
    response_model=DataExport,
    summary="Export my data",
    dependencies=[Depends(audit_action("data_export", "gdpr"))],
)
async def export_data(user: CurrentUser, storage: StorageDep) -> DataExport:
    """Return everything held about the signed-in user."""
    return await GDPRService(storage).export_user_data(user)


@router.post(
    "/delete",
    response_model=ErasureResponse,
    summary="Erase my data",
    dependencies=[Depends(audit_action("data_deletion", "gdpr"))],
)
async def erase_data(user: CurrentUser, storage: StorageDep) -> ErasureResponse:
    """Anonymise the signed-in user's personal data and end their sessions."""
    await GDPRService(storage).erase_user(user)
    return ErasureResponse(
        message="Personal data erased",
        erased_at=utc_now(),
    )
