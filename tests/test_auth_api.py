"""Tests for registration, login, sessions and logout."""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from app.core.config import settings
from app.models import Practice, User
from app.services.audit import REDACTED
from app.storage import MemoryStorage
from app.utils.time import utc_now

PATIENT_PASSWORD = "Patient!Pass1"  # set by the patient fixture


def _registration(**overrides) -> dict:
    data = {
        "email": "New.Patient@Example.com",
        "password": "Brush!Daily2",
        "first_name": "Robin",
        "last_name": "Clarke",
        "gdpr_consent": True,
    }
    data.update(overrides)
    return data


class TestRegistration:
    """Tests for POST /api/auth/register."""

    def test_register_patient_signs_in(self, client: TestClient) -> None:
        response = client.post("/api/auth/register", json=_registration())

        assert response.status_code == 201
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["user"]["email"] == "new.patient@example.com"
        assert data["user"]["user_type"] == "patient"
        assert data["user"]["gdpr_consent_given"] is True

        me = client.get(
            "/api/auth/me", headers={"Authorization": f"Bearer {data['token']}"}
        )
        assert me.status_code == 200
        assert me.json()["id"] == data["user"]["id"]

    def test_register_records_retention_date(
        self, client: TestClient, memory_storage: MemoryStorage
    ) -> None:
        """Consent at signup starts the retention period."""
        response = client.post("/api/auth/register", json=_registration())
        user = memory_storage.users[response.json()["user"]["id"]]

        expected = utc_now() + timedelta(days=settings.data_retention_days)
        assert abs(user.data_retention_date - expected) < timedelta(minutes=1)

    def test_weak_password_lists_errors(self, client: TestClient) -> None:
        response = client.post(
            "/api/auth/register", json=_registration(password="password123")
        )

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["message"] == "Password does not meet security requirements"
        assert len(detail["errors"]) == 3

    def test_duplicate_email_conflicts(self, client: TestClient, patient: User) -> None:
        response = client.post(
            "/api/auth/register", json=_registration(email="PATIENT@example.com")
        )

        assert response.status_code == 409

    def test_invalid_email_is_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/api/auth/register", json=_registration(email="not-an-email")
        )

        assert response.status_code == 400

    def test_dentist_requires_connection_tag(self, client: TestClient) -> None:
        response = client.post(
            "/api/auth/register", json=_registration(user_type="dentist")
        )

        assert response.status_code == 400
        assert response.json()["detail"] == (
            "Practice connection tag is required for dentists"
        )

    def test_dentist_with_unknown_tag(self, client: TestClient, practice: Practice) -> None:
        response = client.post(
            "/api/auth/register",
            json=_registration(user_type="dentist", practice_tag="NOPE-0000"),
        )

        assert response.status_code == 404

    def test_dentist_is_linked_to_tagged_practice(
        self, client: TestClient, practice: Practice
    ) -> None:
        response = client.post(
            "/api/auth/register",
            json=_registration(user_type="dentist", practice_tag="SMILE-4821"),
        )

        assert response.status_code == 201
        user = response.json()["user"]
        assert user["user_type"] == "dentist"
        assert user["practice_id"] == practice.id


class TestLogin:
    """Tests for POST /api/auth/login."""

    def test_login_success(self, client: TestClient, patient: User) -> None:
        response = client.post(
            "/api/auth/login",
            json={"email": "Patient@Example.com", "password": PATIENT_PASSWORD},
        )

        assert response.status_code == 200
        data = response.json()
        assert len(data["token"]) == 64
        assert data["access_token"]
        assert data["expires_in"] == settings.access_token_expire_minutes * 60
        assert data["user"]["id"] == patient.id

    def test_jwt_also_authenticates(self, client: TestClient, patient: User) -> None:
        login = client.post(
            "/api/auth/login",
            json={"email": patient.email, "password": PATIENT_PASSWORD},
        ).json()

        me = client.get(
            "/api/auth/me",
            headers={"Authorization": f"Bearer {login['access_token']}"},
        )
        assert me.status_code == 200
        assert me.json()["email"] == patient.email

    @pytest.mark.parametrize(
        "payload",
        [
            {"email": "patient@example.com", "password": "Wrong!Pass1"},
            {"email": "nobody@example.com", "password": PATIENT_PASSWORD},
            {
                "email": "patient@example.com",
                "password": PATIENT_PASSWORD,
                "user_type": "dentist",
            },
        ],
        ids=["wrong-password", "unknown-email", "wrong-account-type"],
    )
    def test_failures_are_indistinguishable(
        self, client: TestClient, patient: User, payload: dict
    ) -> None:
        response = client.post("/api/auth/login", json=payload)

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid credentials"

    def test_lockout_after_repeated_failures(
        self, client: TestClient, patient: User
    ) -> None:
        """The correct password is refused while the account is locked."""
        for _ in range(settings.max_login_attempts):
            response = client.post(
                "/api/auth/login",
                json={"email": patient.email, "password": "Wrong!Pass1"},
            )
            assert response.status_code == 401

        assert patient.failed_login_attempts == settings.max_login_attempts
        assert patient.locked_until is not None

        response = client.post(
            "/api/auth/login",
            json={"email": patient.email, "password": PATIENT_PASSWORD},
        )
        assert response.status_code == 401

    def test_expired_lock_allows_login_and_resets(
        self, client: TestClient, patient: User
    ) -> None:
        patient.failed_login_attempts = settings.max_login_attempts
        patient.locked_until = utc_now() - timedelta(minutes=1)

        response = client.post(
            "/api/auth/login",
            json={"email": patient.email, "password": PATIENT_PASSWORD},
        )

        assert response.status_code == 200
        assert patient.failed_login_attempts == 0
        assert patient.locked_until is None

    def test_success_resets_failed_attempts(
        self, client: TestClient, patient: User
    ) -> None:
        client.post(
            "/api/auth/login",
            json={"email": patient.email, "password": "Wrong!Pass1"},
        )
        assert patient.failed_login_attempts == 1

        client.post(
            "/api/auth/login",
            json={"email": patient.email, "password": PATIENT_PASSWORD},
        )
        assert patient.failed_login_attempts == 0

    def test_login_is_audited_without_password(
        self, client: TestClient, memory_storage: MemoryStorage, patient: User
    ) -> None:
        client.post(
            "/api/auth/login",
            json={"email": patient.email, "password": PATIENT_PASSWORD},
        )

        entries = list(memory_storage.audit_logs.values())
        assert len(entries) == 1
        entry = entries[0]
        assert entry.action == "login"
        assert entry.resource_type == "auth"
        assert entry.user_id == patient.id
        assert entry.additional_data["body"]["password"] == REDACTED
        assert PATIENT_PASSWORD not in str(entry.additional_data)


class TestSessions:
    """Tests for session validation and logout."""

    def test_missing_token_is_unauthorized(self, client: TestClient) -> None:
        response = client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_unknown_token_is_unauthorized(self, client: TestClient) -> None:
        response = client.get(
            "/api/auth/me", headers={"Authorization": "Bearer " + "0" * 64}
        )

        assert response.status_code == 401

    def test_expired_session_is_removed(
        self,
        client: TestClient,
        memory_storage: MemoryStorage,
        patient_headers: dict[str, str],
    ) -> None:
        token = patient_headers["Authorization"].removeprefix("Bearer ")
        memory_storage.sessions[token].expires_at = utc_now() - timedelta(seconds=1)

        response = client.get("/api/auth/me", headers=patient_headers)

        assert response.status_code == 401
        assert token not in memory_storage.sessions

    def test_logout_revokes_session_and_jwt(
        self, client: TestClient, patient: User
    ) -> None:
        login = client.post(
            "/api/auth/login",
            json={"email": patient.email, "password": PATIENT_PASSWORD},
        ).json()
        session_headers = {"Authorization": f"Bearer {login['token']}"}
        jwt_headers = {"Authorization": f"Bearer {login['access_token']}"}

        response = client.post("/api/auth/logout", headers=jwt_headers)
        assert response.status_code == 200

        assert client.get("/api/auth/me", headers=session_headers).status_code == 401
        assert client.get("/api/auth/me", headers=jwt_headers).status_code == 401

    def test_guest_accounts_cannot_log_in(
        self, client: TestClient, appointment
    ) -> None:
        client.post(
            "/api/bookings",
            json={
                "appointment_id": appointment.id,
                "treatment_category": "routine",
                "email": "guest@example.com",
                "first_name": "Guest",
            },
        )

        response = client.post(
            "/api/auth/login",
            json={"email": "guest@example.com", "password": "anything"},
        )
        assert response.status_code == 401


class TestPracticeTag:
    """Tests for POST /api/auth/verify-practice-tag."""

    def test_known_tag_returns_practice(
        self, client: TestClient, practice: Practice
    ) -> None:
        response = client.post(
            "/api/auth/verify-practice-tag", json={"practice_tag": " SMILE-4821 "}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == practice.id
        assert "connection_tag" not in data

    def test_unknown_tag_is_not_found(self, client: TestClient, practice: Practice) -> None:
        response = client.post(
            "/api/auth/verify-practice-tag", json={"practice_tag": "WRONG-1"}
        )

        assert response.status_code == 404
