"""Schemas for the practice directory and appointment slots."""

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, field_validator

from app.models.appointment import AppointmentStatus
from app.models.practice import TreatmentCategory

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class TreatmentResponse(BaseModel):
    id: int
    name: str
    category: TreatmentCategory
    description: str | None = None
    duration: int
    price: Decimal | None = None

    model_config = {"from_attributes": True}


class DentistResponse(BaseModel):
    id: int
    practice_id: int
    name: str
    title: str | None = None
    specialization: str | None = None
    experience: int | None = None
    qualifications: str | None = None
    bio: str | None = None

    model_config = {"from_attributes": True}


class AppointmentResponse(BaseModel):
    id: int
    practice_id: int
    dentist_id: int | None = None
    treatment_id: int | None = None
    user_id: int | None = None
    appointment_date: date
    appointment_time: str
    duration: int
    treatment_type: str | None = None
    status: AppointmentStatus

    model_config = {"from_attributes": True}


class AppointmentCreate(BaseModel):
    """New slot offered by a practice."""

    appointment_date: date
    appointment_time: str = Field(description="Start time as HH:MM")
    duration: int = Field(default=30, gt=0, le=480)
    dentist_id: int | None = None
    treatment_id: int | None = None
    treatment_type: str | None = Field(default=None, max_length=100)

    @field_validator("appointment_time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        if not _TIME_PATTERN.match(v):
            raise ValueError("appointment_time must be HH:MM")
        return v


class AppointmentReserve(BaseModel):
    """Walk-in reservation made at the practice desk."""

    user_id: int = Field(gt=0)


class PracticeResponse(BaseModel):
    id: int
    name: str
    address: str
    postcode: str | None = None
    latitude: Decimal | None = None
    longitude: Decimal | None = None
    phone: str | None = None
    email: str | None = None
    rating: Decimal | None = None
    review_count: int = 0
    wheelchair_access: bool = False
    sign_language: bool = False
    visual_support: bool = False
    cognitive_support: bool = False
    disabled_parking: bool = False
    opening_hours: dict[str, Any] | None = None
    image_url: str | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class PracticeListingResponse(PracticeResponse):
    """Practice with its open slots and dentists."""

    available_appointments: list[AppointmentResponse] = []
    dentists: list[DentistResponse] = []
