"""Authentication service: credentials, sessions and registration."""

import logging
from datetime import timedelta

from app.core.config import settings
from app.core.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from app.core.security import (
    create_access_token,
    decode_access_token,
    generate_session_token,
    generate_unusable_password,
    hash_password,
    is_account_locked,
    lockout_expiry,
    validate_password_strength,
    verify_password,
)
from app.models.practice import Practice
from app.models.user import User, UserSession, UserType
from app.schemas.auth import RegisterRequest
from app.storage.base import Storage
from app.utils.privacy import anonymize_personal_data, mask_email
from app.utils.time import ensure_aware, utc_now

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


class PasswordPolicyError(ValidationError):
    """Password does not meet the strength rules."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("Password does not meet security requirements")
        self.errors = errors


class AuthService:
    """Service for handling authentication operations."""

    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    # --- Credentials ---

    async def authenticate(
        self,
        email: str,
        password: str,
        user_type: UserType | None = None,
    ) -> User:
        """Authenticate a user with email and password.

        Every failure raises the same error so callers cannot tell an
        unknown account from a wrong password or a locked account.

        Args:
            email: Account email address
            password: Plain text password
            user_type: Expected account type, if the client asked for one

        Returns:
            Authenticated User

        Raises:
            AuthenticationError: On any credential failure
        """
        user = await self.storage.get_user_by_email(email)
        if user is None or user.is_guest:
            logger.info(f"Login failed for unknown account {mask_email(email)}")
            raise AuthenticationError(INVALID_CREDENTIALS)

        now = utc_now()
        if is_account_locked(user.failed_login_attempts, user.locked_until, now):
            logger.warning(f"Login attempt on locked account user_id={user.id}")
            raise AuthenticationError(INVALID_CREDENTIALS)

        if user.locked_until is not None and ensure_aware(user.locked_until) <= now:
            # Lock window elapsed, start counting afresh
            user = await self.storage.update_user(
                user.id, failed_login_attempts=0, locked_until=None
            )

        if not verify_password(password, user.password_hash):
            await self._record_failed_attempt(user)
            raise AuthenticationError(INVALID_CREDENTIALS)

        if user_type is not None and user.user_type != user_type:
            logger.info(f"Login rejected for user_id={user.id}: wrong account type")
            raise AuthenticationError(INVALID_CREDENTIALS)

        if user.failed_login_attempts or user.locked_until:
            user = await self.storage.update_user(
                user.id, failed_login_attempts=0, locked_until=None
            )

        return user

    async def _record_failed_attempt(self, user: User) -> None:
        attempts = user.failed_login_attempts + 1
        fields = {"failed_login_attempts": attempts}
        if attempts >= settings.max_login_attempts:
            fields["locked_until"] = lockout_expiry()
            logger.warning(
                f"Account locked after {attempts} failed attempts user_id={user.id}"
            )
        await self.storage.update_user(user.id, **fields)

    # --- Sessions ---

    async def create_session(self, user_id: int) -> UserSession:
        """Create a server-side session for a user.

        Args:
            user_id: ID of the authenticated user

        Returns:
            Persisted UserSession; its id is the bearer token
        """
        expires_at = utc_now() + timedelta(hours=settings.session_ttl_hours)
        return await self.storage.create_session(
            generate_session_token(), user_id, expires_at
        )

    async def validate_session(self, token: str) -> User | None:
        """Resolve a session token to its user.

        Expired sessions are deleted when they are seen.
        """
        session = await self.storage.get_session(token)
        if session is None:
            return None

        if ensure_aware(session.expires_at) <= utc_now():
            await self.storage.delete_session(token)
            return None

        return await self.storage.get_user(session.user_id)

    async def invalidate_session(self, token: str) -> None:
        await self.storage.delete_session(token)

    def create_token(self, user: User, session: UserSession) -> str:
        """Create a JWT bound to a session so logout revokes it too."""
        return create_access_token(
            subject=str(user.id),
            additional_claims={
                "sid": session.id,
                "user_type": user.user_type,
                "email": user.email,
            },
        )

    @staticmethod
    def session_id_from_bearer(bearer: str) -> str:
        """Return the session id carried by a bearer credential.

        Accepts either a JWT issued at login or the raw session token.
        """
        payload = decode_access_token(bearer)
        if payload and payload.get("sid"):
            return payload["sid"]
        return bearer

    async def resolve_bearer(self, bearer: str) -> User | None:
        return await self.validate_session(self.session_id_from_bearer(bearer))

    # --- Registration ---

    async def verify_practice_tag(self, tag: str) -> Practice:
        practice = await self.storage.get_practice_by_tag(tag.strip())
        if practice is None:
            raise NotFoundError("Invalid practice connection tag")
        return practice

    async def register(self, data: RegisterRequest) -> User:
        """Create a patient or dentist account.

        Raises:
            PasswordPolicyError: If the password is too weak
            ValidationError: If a dentist omits the connection tag
            NotFoundError: If the connection tag is unknown
            ConflictError: If the email is already registered
        """
        strength = validate_password_strength(data.password)
        if not strength.valid:
            raise PasswordPolicyError(strength.errors)

        practice_id = None
        if data.user_type == UserType.DENTIST:
            if not data.practice_tag:
                raise ValidationError("Practice connection tag is required for dentists")
            practice_id = (await self.verify_practice_tag(data.practice_tag)).id

        if await self.storage.get_user_by_email(data.email):
            raise ConflictError("User already exists")

        fields = {
            "email": data.email,
            "password_hash": hash_password(data.password),
            "first_name": data.first_name,
            "last_name": data.last_name,
            "phone": data.phone,
            "date_of_birth": data.date_of_birth,
            "user_type": data.user_type,
            "practice_id": practice_id,
        }
        if data.gdpr_consent:
            now = utc_now()
            fields.update(
                gdpr_consent_given=True,
                gdpr_consent_date=now,
                data_retention_date=now + timedelta(days=settings.data_retention_days),
            )
        if data.marketing_consent:
            fields.update(marketing_consent_given=True, marketing_consent_date=utc_now())

        user = await self.storage.create_user(**fields)
        logger.info(
            f"Registered {UserType(user.user_type).value} account user_id={user.id}"
        )
        return user

    async def create_guest(
        self,
        email: str | None = None,
        first_name: str | None = None,
        last_name: str | None = None,
        phone: str | None = None,
    ) -> User:
        """Get or create a patient account that can hold bookings but never log in.

        A returning guest who gives the same email gets their earlier
        account back, with any newly supplied contact details applied.

        Raises:
            ConflictError: If the email belongs to a registered account
        """
        if email is None:
            email = f"guest-{generate_session_token()[:16]}@guest.dentconnect.invalid"
        else:
            existing = await self.storage.get_user_by_email(email)
            if existing is not None and not existing.is_guest:
                raise ConflictError(
                    "An account with this email already exists. Please log in."
                )
            if existing is not None:
                return await self._refresh_guest(
                    existing, first_name=first_name, last_name=last_name, phone=phone
                )

        user = await self.storage.create_user(
            email=email,
            password_hash=hash_password(generate_unusable_password()),
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            user_type=UserType.PATIENT,
            is_guest=True,
        )
        contact = anonymize_personal_data(
            {"email": email, "phone": phone, "first_name": first_name, "last_name": last_name}
        )
        logger.info(f"Created guest account user_id={user.id} contact={contact}")
        return user

    async def _refresh_guest(self, guest: User, **contact: str | None) -> User:
        changes = {
            key: value
            for key, value in contact.items()
            if value is not None and value != getattr(guest, key)
        }
        if changes:
            guest = await self.storage.update_user(guest.id, **changes)
        logger.info(f"Reusing guest account user_id={guest.id}")
        return guest
