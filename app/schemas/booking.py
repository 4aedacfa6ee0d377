"""Schemas for bookings and triage assessments."""

from datetime import date, datetime

from pydantic import BaseModel, Field

from app.models.appointment import AppointmentStatus
from app.models.booking import ApprovalStatus, BookingStatus, PatientAnxiety
from app.models.practice import TreatmentCategory
from app.models.triage import (
    AlcoholConsumption,
    AnxietyLevel,
    PregnancyStatus,
    SmokingStatus,
    UrgencyLevel,
)
from app.schemas.auth import LenientEmail
from app.schemas.practice import AppointmentResponse, PracticeResponse, TreatmentResponse


class TriageAssessmentCreate(BaseModel):
    """Clinical intake submitted with a booking."""

    pain_level: int = Field(ge=0, le=10)
    pain_duration: str = Field(min_length=1, max_length=50)
    symptoms: str = Field(min_length=1, max_length=5000)
    swelling: bool = False
    trauma: bool = False
    bleeding: bool = False
    infection: bool = False
    urgency_level: UrgencyLevel
    triage_notes: str | None = Field(default=None, max_length=5000)
    anxiety_level: AnxietyLevel | None = None
    medical_history: str | None = Field(default=None, max_length=5000)
    current_medications: str | None = Field(default=None, max_length=5000)
    allergies: str | None = Field(default=None, max_length=5000)
    previous_dental_treatment: str | None = Field(default=None, max_length=5000)
    smoking_status: SmokingStatus | None = None
    alcohol_consumption: AlcoholConsumption | None = None
    pregnancy_status: PregnancyStatus | None = None


class TriageAssessmentResponse(TriageAssessmentCreate):
    id: int
    user_id: int | None = None
    appointment_id: int | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class BookingCreate(BaseModel):
    """Booking submission.

    Without a user_id and without a signed-in user, a guest account is
    created from the contact fields.
    """

    user_id: int | None = None
    appointment_id: int
    treatment_category: TreatmentCategory
    special_requests: str | None = Field(default=None, max_length=2000)
    accessibility_needs: list[str] = Field(default_factory=list)
    medications: bool = False
    allergies: bool = False
    last_dental_visit: str | None = Field(default=None, max_length=50)
    anxiety_level: PatientAnxiety | None = None

    # Guest contact details
    email: LenientEmail | None = None
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    phone: str | None = Field(default=None, max_length=50)

    triage: TriageAssessmentCreate | None = None


class BookingResponse(BaseModel):
    id: int
    user_id: int
    appointment_id: int
    triage_assessment_id: int | None = None
    treatment_category: str
    accessibility_needs: list[str] | None = None
    medications: bool = False
    allergies: bool = False
    last_dental_visit: str | None = None
    anxiety_level: PatientAnxiety | None = None
    special_requests: str | None = None
    status: BookingStatus
    approval_status: ApprovalStatus
    approved_by: int | None = None
    approved_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class PatientContact(BaseModel):
    id: int
    first_name: str | None = None
    last_name: str | None = None
    email: str
    phone: str | None = None

    model_config = {"from_attributes": True}


class PracticeBookingResponse(BaseModel):
    """Booking as shown on a practice dashboard."""

    booking: BookingResponse
    appointment_date: date
    appointment_time: str
    appointment_status: AppointmentStatus
    treatment: TreatmentResponse | None = None
    patient: PatientContact
    triage: TriageAssessmentResponse | None = None


class UserBookingResponse(BaseModel):
    """Booking as shown in a patient's history."""

    booking: BookingResponse
    appointment: AppointmentResponse
    practice: PracticeResponse
    treatment: TreatmentResponse | None = None
