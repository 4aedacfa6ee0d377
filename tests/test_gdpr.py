"""Tests for consent, data export, erasure and the data access gate."""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from app.core.exceptions import AuthorizationError
from app.models import Appointment, User
from app.services.gdpr import CONSENT_REQUIRED, RETENTION_EXPIRED, check_data_access
from app.storage import MemoryStorage
from app.utils.time import ensure_aware, utc_now

PATIENT_PASSWORD = "Patient!Pass1"


class TestConsent:
    """Tests for GET/POST /api/gdpr/consent."""

    def test_get_consent(
        self, client: TestClient, patient: User, patient_headers: dict[str, str]
    ) -> None:
        response = client.get("/api/gdpr/consent", headers=patient_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["gdpr_consent_given"] is True
        assert data["marketing_consent_given"] is False
        assert data["data_retention_date"] is not None

    def test_giving_consent_restarts_retention(
        self, client: TestClient, patient: User, patient_headers: dict[str, str]
    ) -> None:
        patient.data_retention_date = utc_now() + timedelta(days=3)

        response = client.post(
            "/api/gdpr/consent",
            json={"gdpr_consent": True, "marketing_consent": True},
            headers=patient_headers,
        )

        assert response.status_code == 200
        assert response.json()["marketing_consent_given"] is True
        assert ensure_aware(patient.data_retention_date) > utc_now() + timedelta(days=364)
        assert patient.marketing_consent_date is not None

    def test_withdrawing_consent_clears_retention(
        self, client: TestClient, patient: User, patient_headers: dict[str, str]
    ) -> None:
        response = client.post(
            "/api/gdpr/consent",
            json={"gdpr_consent": False},
            headers=patient_headers,
        )

        data = response.json()
        assert data["gdpr_consent_given"] is False
        assert data["gdpr_consent_date"] is None
        assert data["data_retention_date"] is None

    def test_consent_change_is_audited(
        self,
        client: TestClient,
        memory_storage: MemoryStorage,
        patient: User,
        patient_headers: dict[str, str],
    ) -> None:
        client.post(
            "/api/gdpr/consent",
            json={"gdpr_consent": True},
            headers=patient_headers,
        )

        entry = next(iter(memory_storage.audit_logs.values()))
        assert (entry.action, entry.resource_type) == ("consent_update", "gdpr")
        assert entry.user_id == patient.id

    def test_requires_authentication(self, client: TestClient) -> None:
        assert client.get("/api/gdpr/consent").status_code == 401


class TestDataExport:
    """Tests for GET /api/gdpr/export."""

    def test_export_contains_profile_bookings_and_triage(
        self,
        client: TestClient,
        patient: User,
        appointment: Appointment,
        patient_headers: dict[str, str],
    ) -> None:
        booked = client.post(
            "/api/bookings",
            json={
                "appointment_id": appointment.id,
                "treatment_category": "urgent",
                "triage": {
                    "pain_level": 6,
                    "pain_duration": "1 week",
                    "urgency_level": "medium",
                    "symptoms": "Cracked molar",
                    "medical_history": "Type 1 diabetes",
                },
            },
            headers=patient_headers,
        ).json()
        patient.medical_conditions = "Type 1 diabetes"

        response = client.get("/api/gdpr/export", headers=patient_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["profile"]["email"] == "patient@example.com"
        assert data["profile"]["medical_conditions"] == "Type 1 diabetes"
        assert [b["id"] for b in data["bookings"]] == [booked["id"]]
        assert len(data["triage_assessments"]) == 1
        assert data["triage_assessments"][0]["medical_history"] == "Type 1 diabetes"

    def test_export_for_user_without_bookings(
        self, client: TestClient, patient: User, patient_headers: dict[str, str]
    ) -> None:
        data = client.get("/api/gdpr/export", headers=patient_headers).json()

        assert data["bookings"] == []
        assert data["triage_assessments"] == []


class TestErasure:
    """Tests for POST /api/gdpr/delete."""

    def test_erasure_anonymises_account(
        self, client: TestClient, patient: User, patient_headers: dict[str, str]
    ) -> None:
        patient_id = patient.id

        response = client.post("/api/gdpr/delete", headers=patient_headers)

        assert response.status_code == 200
        assert response.json()["message"] == "Personal data erased"
        assert patient.email == f"erased-{patient_id}@erased.invalid"
        assert patient.first_name is None
        assert patient.phone is None
        assert patient.gdpr_consent_given is False

    def test_erasure_ends_sessions(
        self, client: TestClient, patient: User, patient_headers: dict[str, str]
    ) -> None:
        client.post("/api/gdpr/delete", headers=patient_headers)

        assert client.get("/api/auth/me", headers=patient_headers).status_code == 401

    def test_erased_account_cannot_log_in(
        self, client: TestClient, patient: User, patient_headers: dict[str, str]
    ) -> None:
        client.post("/api/gdpr/delete", headers=patient_headers)

        for email in ("patient@example.com", patient.email):
            response = client.post(
                "/api/auth/login", json={"email": email, "password": PATIENT_PASSWORD}
            )
            assert response.status_code == 401


class TestDataAccessGate:
    """Tests for check_data_access and the consent-gated routes."""

    def test_consented_user_passes(self, patient: User) -> None:
        check_data_access(patient)

    def test_missing_consent(self, patient: User) -> None:
        patient.gdpr_consent_given = False

        with pytest.raises(AuthorizationError) as exc_info:
            check_data_access(patient)
        assert exc_info.value.message == CONSENT_REQUIRED

    def test_expired_retention(self, patient: User) -> None:
        patient.data_retention_date = utc_now() - timedelta(days=1)

        with pytest.raises(AuthorizationError) as exc_info:
            check_data_access(patient)
        assert exc_info.value.message == RETENTION_EXPIRED

    def test_expired_retention_blocks_booking_history(
        self, client: TestClient, patient: User, patient_headers: dict[str, str]
    ) -> None:
        patient.data_retention_date = utc_now() - timedelta(days=1)

        response = client.get(f"/api/users/{patient.id}/bookings", headers=patient_headers)

        assert response.status_code == 403
        assert response.json()["detail"] == RETENTION_EXPIRED
