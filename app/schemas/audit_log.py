"""Pydantic schemas for audit log entries."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class AuditLogRead(BaseModel):
    """Schema for reading an audit entry."""

    id: int
    user_id: int | None = None
    user_email: str | None = None
    action: str
    resource_type: str
    resource_id: int | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    request_method: str | None = None
    request_path: str | None = None
    additional_data: dict[str, Any] | None = None
    nhs_compliance: bool = False
    created_at: datetime

    model_config = {"from_attributes": True}
