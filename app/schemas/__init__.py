"""Pydantic schemas for request/response validation."""

from app.schemas.audit_log import AuditLogRead
from app.schemas.auth import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    UserResponse,
    VerifyPracticeTagRequest,
)
from app.schemas.booking import (
    BookingCreate,
    BookingResponse,
    PracticeBookingResponse,
    TriageAssessmentCreate,
    TriageAssessmentResponse,
    UserBookingResponse,
)
from app.schemas.gdpr import ConsentCapture, ConsentStatus, DataExport
from app.schemas.practice import (
    AppointmentCreate,
    AppointmentResponse,
    DentistResponse,
    PracticeListingResponse,
    PracticeResponse,
    TreatmentResponse,
)

__all__ = [
    "LoginRequest",
    "LoginResponse",
    "RegisterRequest",
    "UserResponse",
    "VerifyPracticeTagRequest",
    "BookingCreate",
    "BookingResponse",
    "PracticeBookingResponse",
    "UserBookingResponse",
    "TriageAssessmentCreate",
    "TriageAssessmentResponse",
    "AppointmentCreate",
    "AppointmentResponse",
    "DentistResponse",
    "PracticeResponse",
    "PracticeListingResponse",
    "TreatmentResponse",
    "ConsentCapture",
    "ConsentStatus",
    "DataExport",
    "AuditLogRead",
]
