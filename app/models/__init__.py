"""Database models for DentConnect."""

from app.models.appointment import Appointment, AppointmentStatus
from app.models.audit_log import AuditLog
from app.models.booking import (
    OPEN_BOOKING_STATUSES,
    ApprovalStatus,
    Booking,
    BookingStatus,
    PatientAnxiety,
)
from app.models.practice import Dentist, Practice, Treatment, TreatmentCategory
from app.models.triage import (
    AlcoholConsumption,
    AnxietyLevel,
    PregnancyStatus,
    SmokingStatus,
    TriageAssessment,
    UrgencyLevel,
)
from app.models.user import User, UserSession, UserType

__all__ = [
    # User & Auth
    "User",
    "UserType",
    "UserSession",
    # Practice directory
    "Practice",
    "Dentist",
    "Treatment",
    "TreatmentCategory",
    # Slots
    "Appointment",
    "AppointmentStatus",
    # Booking
    "Booking",
    "BookingStatus",
    "ApprovalStatus",
    "PatientAnxiety",
    "OPEN_BOOKING_STATUSES",
    # Triage
    "TriageAssessment",
    "UrgencyLevel",
    "AnxietyLevel",
    "SmokingStatus",
    "AlcoholConsumption",
    "PregnancyStatus",
    # Audit
    "AuditLog",
]
