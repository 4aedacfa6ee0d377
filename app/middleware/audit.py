"""Audit middleware.

Builds audit entries from what the route declared through the
audit_action dependency and writes them after the response has gone out.
"""

import logging
import time
from typing import Any

from fastapi import Request, Response, status
from starlette.background import BackgroundTask
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from app.services.audit import (
    AuditActor,
    AuditSpec,
    classify_request,
    is_clinical_path,
    record_audit_entries,
)
from app.utils.request import get_client_ip

logger = logging.getLogger(__name__)

MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
API_PREFIX = "/api"


def build_audit_entries(request: Request, status_code: int) -> list[dict[str, Any]]:
    """Turn a finished request into audit entry fields.

    Declared routes are always audited. Undeclared mutating requests
    under /api are audited with the fallback classification. Paths that
    touch clinical data get an extra clinical access entry.
    """
    path = request.url.path
    if not path.startswith(API_PREFIX):
        return []

    spec: AuditSpec | None = getattr(request.state, "audit_spec", None)
    clinical = is_clinical_path(path)
    if spec is None and request.method not in MUTATING_METHODS and not clinical:
        return []

    actor: AuditActor | None = getattr(request.state, "audit_actor", None)
    action, resource_type = classify_request(request.method, spec)

    additional_data: dict[str, Any] = {"status_code": status_code}
    body = getattr(request.state, "audit_body", None)
    if body is not None:
        additional_data["body"] = body
    if request.query_params:
        additional_data["query"] = dict(request.query_params)

    base = {
        "user_id": actor.id if actor else None,
        "user_email": actor.email if actor else None,
        "ip_address": get_client_ip(request),
        "user_agent": request.headers.get("User-Agent"),
        "request_method": request.method,
        "request_path": path,
    }

    entries = []
    if spec is not None or request.method in MUTATING_METHODS:
        entries.append(
            {
                **base,
                "action": action,
                "resource_type": resource_type,
                "resource_id": getattr(request.state, "audit_resource_id", None),
                "additional_data": additional_data,
            }
        )

    if clinical:
        entries.append(
            {
                **base,
                "action": "medical_data_access",
                "resource_type": "clinical_data",
                "resource_id": getattr(request.state, "audit_resource_id", None),
                "nhs_compliance": True,
                "additional_data": {
                    "status_code": status_code,
                    "clinical_context": {
                        "access_reason": request.headers.get(
                            "X-Access-Reason", "routine_access"
                        ),
                        "clinical_role": actor.user_type if actor else "unknown",
                    },
                },
            }
        )

    return entries


class AuditMiddleware(BaseHTTPMiddleware):
    """Logs each API request and schedules its audit entries.

    The write is attached to the response as a background task, so it
    runs only after the body has been sent and cannot change the status
    the client sees. A route that raises is audited as a 500 before the
    exception continues to the server error handler.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            if request.url.path.startswith(API_PREFIX):
                self._log_request(request, status.HTTP_500_INTERNAL_SERVER_ERROR, start)
                entries = build_audit_entries(request, status.HTTP_500_INTERNAL_SERVER_ERROR)
                if entries:
                    await record_audit_entries(request.app.state.storage_provider, entries)
            raise

        if request.url.path.startswith(API_PREFIX):
            self._log_request(request, response.status_code, start)
            entries = build_audit_entries(request, response.status_code)
            if entries:
                response.background = BackgroundTask(
                    record_audit_entries,
                    request.app.state.storage_provider,
                    entries,
                )

        return response

    @staticmethod
    def _log_request(request: Request, status_code: int, start: float) -> None:
        elapsed_ms = round((time.perf_counter() - start) * 1000)
        actor = getattr(request.state, "audit_actor", None)
        logger.info(
            f"{request.method} {request.url.path} {status_code} in {elapsed_ms}ms",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "duration_ms": elapsed_ms,
                "user_id": actor.id if actor else None,
            },
        )
