"""Logging setup for the API process."""

import logging
import sys
from typing import Any

from app.core.config import settings

# Attributes passed through `extra=` that the key=value format emits
CONTEXT_FIELDS = (
    "method",
    "path",
    "status_code",
    "duration_ms",
    "user_id",
    "action",
    "resource",
)


class StructuredFormatter(logging.Formatter):
    """One key=value line per record, for log shippers outside dev."""

    def format(self, record: logging.LogRecord) -> str:
        fields: dict[str, Any] = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                fields[name] = value
        if record.exc_info:
            fields["exc"] = self.formatException(record.exc_info)

        return " ".join(f"{key}={_quote(value)}" for key, value in fields.items())


def _quote(value: Any) -> str:
    text = str(value)
    if not text or any(ch in text for ch in ' ="\n'):
        return '"' + text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n") + '"'
    return text


def setup_logging() -> None:
    """Route all logging to stdout at LOG_LEVEL."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if settings.is_dev:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s")
        )
    else:
        handler.setFormatter(StructuredFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)

    # Quiet chatty libraries
    for name, lib_level in (
        ("uvicorn.access", logging.WARNING),
        ("sqlalchemy.engine", logging.WARNING),
        ("passlib", logging.ERROR),
    ):
        logging.getLogger(name).setLevel(lib_level)


class AuditLogger:
    """Mirrors persisted audit entries onto the "audit" logger."""

    def __init__(self) -> None:
        self.logger = logging.getLogger("audit")

    def log(
        self,
        action: str,
        resource_type: str,
        user_id: int | None,
        resource_id: int | None,
        request_path: str | None = None,
        clinical: bool = False,
    ) -> None:
        resource = f"{resource_type}:{resource_id}" if resource_id else resource_type
        self.logger.info(
            f"{'CLINICAL ' if clinical else ''}AUDIT {action} {resource}",
            extra={
                "action": action,
                "resource": resource,
                "user_id": user_id,
                "path": request_path,
            },
        )


audit_logger = AuditLogger()
