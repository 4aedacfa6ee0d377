"""Audit log service for append-only audit logging."""

import logging
from dataclasses import dataclass
from typing import Any

from app.core.logging import audit_logger
from app.models.audit_log import AuditLog
from app.models.user import User, UserType
from app.storage.base import Storage, StorageProvider

logger = logging.getLogger(__name__)

REDACTED = "[REDACTED]"

# Compared after lower-casing and dropping underscores, so password_hash
# and passwordHash both match
SENSITIVE_FIELDS = frozenset(
    {
        "password",
        "passwordhash",
        "confirmpassword",
        "twofactorsecret",
        "emailverificationtoken",
        "passwordresettoken",
        "sessionid",
        "refreshtoken",
        "token",
        "accesstoken",
        "creditcardnumber",
        "cardnumber",
        "cvv",
    }
)

CLINICAL_PATH_MARKERS = ("triage", "medical")


@dataclass(frozen=True)
class AuditSpec:
    """What a route does, for the audit trail.

    Attributes:
        action: Verb recorded in the log (e.g. "approve")
        resource_type: Kind of record touched (e.g. "booking")
        resource_param: Path parameter that carries the record id
    """

    action: str
    resource_type: str
    resource_param: str | None = None


@dataclass(frozen=True)
class AuditActor:
    """Who made a request, captured while the user row is still loaded."""

    id: int
    email: str
    user_type: str

    @classmethod
    def from_user(cls, user: User) -> "AuditActor":
        return cls(id=user.id, email=user.email, user_type=UserType(user.user_type).value)


def _normalize_key(key: str) -> str:
    return key.replace("_", "").replace("-", "").lower()


def sanitize_request_body(body: Any) -> Any:
    """Redact sensitive fields at any depth.

    Args:
        body: Decoded JSON body (dict, list or scalar)

    Returns:
        Copy of the body with sensitive values replaced
    """
    if isinstance(body, dict):
        return {
            key: (
                REDACTED
                if isinstance(key, str) and _normalize_key(key) in SENSITIVE_FIELDS
                else sanitize_request_body(value)
            )
            for key, value in body.items()
        }
    if isinstance(body, list):
        return [sanitize_request_body(item) for item in body]
    return body


def classify_request(method: str, spec: AuditSpec | None) -> tuple[str, str]:
    """Return (action, resource_type) for a request.

    Routes that declared an AuditSpec use it; anything else is recorded
    under the HTTP method with an unknown resource type.
    """
    if spec is not None:
        return spec.action, spec.resource_type
    return method.lower(), "unknown"


def is_clinical_path(path: str) -> bool:
    lowered = path.lower()
    return any(marker in lowered for marker in CLINICAL_PATH_MARKERS)


async def write_audit_entry(
    storage: Storage,
    action: str,
    resource_type: str,
    user_id: int | None = None,
    resource_id: int | None = None,
    user_email: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    request_method: str | None = None,
    request_path: str | None = None,
    additional_data: dict[str, Any] | None = None,
    nhs_compliance: bool = False,
) -> AuditLog:
    """Write an audit entry.

    Entries are append-only and cannot be modified or deleted.

    Args:
        storage: Storage handle
        action: Action performed (e.g., "login", "approve")
        resource_type: Type of record affected (e.g., "booking")
        user_id: Acting user, None for anonymous requests
        resource_id: ID of the affected record
        user_email: Email of the actor (for easier querying)
        ip_address: Client IP address
        user_agent: Client user agent string
        request_method: HTTP method
        request_path: Request path
        additional_data: Sanitized body and request context
        nhs_compliance: Marks clinical data access entries

    Returns:
        Created AuditLog instance
    """
    entry = await storage.create_audit_log(
        user_id=user_id,
        user_email=user_email,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        ip_address=ip_address,
        user_agent=user_agent,
        request_method=request_method,
        request_path=request_path,
        additional_data=additional_data,
        nhs_compliance=nhs_compliance,
    )

    # Also log to structured logger
    audit_logger.log(
        action=action,
        resource_type=resource_type,
        user_id=user_id,
        resource_id=resource_id,
        request_path=request_path,
        clinical=nhs_compliance,
    )

    return entry


async def record_audit_entries(
    storage_provider: StorageProvider,
    entries: list[dict[str, Any]],
) -> None:
    """Persist audit entries after the response has been sent.

    Failures are logged and swallowed so auditing never affects the
    request that triggered it.
    """
    try:
        async with storage_provider() as storage:
            for entry in entries:
                await write_audit_entry(storage, **entry)
    except Exception:
        paths = {entry.get("request_path") for entry in entries}
        logger.exception(f"Failed to write {len(entries)} audit entries for {paths}")


class AuditService:
    """Service for querying audit entries.

    Note: This service only provides read operations.
    Entries are created via write_audit_entry().
    """

    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    async def get_entries(
        self,
        resource_type: str | None = None,
        resource_id: int | None = None,
        user_id: int | None = None,
        limit: int = 100,
    ) -> list[AuditLog]:
        """Query audit entries, newest first."""
        return await self.storage.list_audit_logs(
            resource_type=resource_type,
            resource_id=resource_id,
            user_id=user_id,
            limit=limit,
        )

    async def get_resource_history(
        self,
        resource_type: str,
        resource_id: int,
        limit: int = 100,
    ) -> list[AuditLog]:
        """Get audit history for a specific record."""
        return await self.get_entries(
            resource_type=resource_type, resource_id=resource_id, limit=limit
        )
