"""Pydantic schemas for GDPR operations."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class ConsentCapture(BaseModel):
    """Schema for recording consent."""

    gdpr_consent: bool = Field(..., description="Consent to processing of personal data")
    marketing_consent: bool = Field(default=False, description="Consent to marketing contact")


class ConsentStatus(BaseModel):
    """Schema for the current consent state."""

    gdpr_consent_given: bool
    gdpr_consent_date: datetime | None = None
    marketing_consent_given: bool
    marketing_consent_date: datetime | None = None
    data_retention_date: datetime | None = None

    model_config = {"from_attributes": True}


class DataExport(BaseModel):
    """Everything held about a user (right of access)."""

    exported_at: datetime
    profile: dict[str, Any]
    bookings: list[dict[str, Any]]
    triage_assessments: list[dict[str, Any]]


class ErasureResponse(BaseModel):
    message: str
    erased_at: datetime
