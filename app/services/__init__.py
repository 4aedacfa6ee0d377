"""Business logic services."""

from app.services.appointments import AppointmentService
from app.services.audit import AuditService, write_audit_entry
from app.services.auth import AuthService
from app.services.booking import BookingService
from app.services.gdpr import GDPRService
from app.services.practice import PracticeService
from app.services.triage import TriageService

__all__ = [
    "AppointmentService",
    "AuditService",
    "write_audit_entry",
    "AuthService",
    "BookingService",
    "GDPRService",
    "PracticeService",
    "TriageService",
]
