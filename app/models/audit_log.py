"""Append-only audit log model for compliance and traceability."""

from sqlalchemy import JSON, Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, CreatedAtMixin


class AuditLog(Base, CreatedAtMixin):
    """Append-only audit entry for every mutating request.

    IMPORTANT: This model intentionally has no update or delete
    operations. All entries are immutable once created.

    Used for:
    - NHS DSPT audit requirements
    - UK GDPR audit trail
    - Security monitoring
    - Clinical data access tracking
    """

    __tablename__ = "audit_logs"

    # Actor information (null for anonymous requests)
    user_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    user_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Action performed
    action: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    resource_type: Mapped[str] = mapped_column(String(100), nullable=False)
    resource_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)

    # Request context
    ip_address: Mapped[str | None] = mapped_column(
        String(45),  # Supports IPv6
        nullable=True,
    )
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    request_method: Mapped[str | None] = mapped_column(String(10), nullable=True)
    request_path: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Sanitized request body and clinical context
    additional_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    nhs_compliance: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<AuditLog {self.action} by {self.user_id} "
            f"on {self.resource_type}:{self.resource_id}>"
        )
