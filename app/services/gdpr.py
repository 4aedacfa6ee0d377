"""GDPR service: consent, data export and erasure."""

import logging
from datetime import timedelta
from typing import Any

from app.core.config import settings
from app.core.exceptions import AuthorizationError
from app.core.security import generate_unusable_password, hash_password
from app.models.user import User
from app.schemas.auth import UserResponse
from app.schemas.booking import BookingResponse, TriageAssessmentResponse
from app.schemas.gdpr import DataExport
from app.storage.base import Storage
from app.utils.time import ensure_aware, utc_now

logger = logging.getLogger(__name__)

CONSENT_REQUIRED = "GDPR consent required"
RETENTION_EXPIRED = "Data retention period expired"


def check_data_access(user: User) -> None:
    """Refuse data-bearing operations without valid consent.

    Raises:
        AuthorizationError: If consent is missing or the retention
            period has passed
    """
    if not user.gdpr_consent_given:
        raise AuthorizationError(CONSENT_REQUIRED)
    if user.data_retention_date and ensure_aware(user.data_retention_date) < utc_now():
        raise AuthorizationError(RETENTION_EXPIRED)


class GDPRService:
    """Service for data subject rights."""

    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    async def record_consent(
        self,
        user: User,
        gdpr_consent: bool,
        marketing_consent: bool = False,
    ) -> User:
        """Record a user's consent choices.

        Giving consent restarts the retention period.
        """
        now = utc_now()
        fields: dict[str, Any] = {
            "gdpr_consent_given": gdpr_consent,
            "gdpr_consent_date": now if gdpr_consent else None,
            "data_retention_date": (
                now + timedelta(days=settings.data_retention_days)
                if gdpr_consent
                else None
            ),
            "marketing_consent_given": marketing_consent,
            "marketing_consent_date": now if marketing_consent else None,
        }
        updated = await self.storage.update_user(user.id, **fields)
        logger.info(
            f"Consent recorded for user_id={user.id} gdpr={gdpr_consent} "
            f"marketing={marketing_consent}"
        )
        return updated

    async def export_user_data(self, user: User) -> DataExport:
        """Collect everything held about a user."""
        records = await self.storage.list_user_bookings(user.id)
        assessments = await self.storage.list_user_triage_assessments(user.id)

        profile = UserResponse.model_validate(user).model_dump(mode="json")
        profile.update(
            date_of_birth=user.date_of_birth.isoformat() if user.date_of_birth else None,
            medical_conditions=user.medical_conditions,
            medications=user.medications,
            allergies=user.allergies,
        )

        return DataExport(
            exported_at=utc_now(),
            profile=profile,
            bookings=[
                BookingResponse.model_validate(r.booking).model_dump(mode="json")
                for r in records
            ],
            triage_assessments=[
                TriageAssessmentResponse.model_validate(a).model_dump(mode="json")
                for a in assessments
            ],
        )

    async def erase_user(self, user: User) -> User:
        """Anonymise a user in place (right to erasure).

        Bookings and appointments are kept for the audit trail but no
        longer point at anything identifying.
        """
        await self.storage.delete_user_sessions(user.id)
        erased = await self.storage.update_user(
            user.id,
            email=f"erased-{user.id}@erased.invalid",
            password_hash=hash_password(generate_unusable_password()),
            first_name=None,
            last_name=None,
            phone=None,
            date_of_birth=None,
            medical_conditions=None,
            medications=None,
            allergies=None,
            gdpr_consent_given=False,
            marketing_consent_given=False,
            marketing_consent_date=None,
            data_retention_date=None,
        )
        logger.info(f"Erased personal data for user_id={user.id}")
        return erased
