"""FastAPI dependency injection utilities."""

from typing import Annotated, AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.exceptions import AuthorizationError
from app.models.user import User
from app.services.audit import AuditActor, AuditSpec, sanitize_request_body
from app.services.auth import AuthService
from app.services.gdpr import check_data_access
from app.storage.base import Storage

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_storage(request: Request) -> AsyncGenerator[Storage, None]:
    """Yield a storage handle for the current request.

    The backend is chosen at startup and kept on app.state, so tests
    can swap it without touching module globals.
    """
    async with request.app.state.storage_provider() as storage:
        yield storage


StorageDep = Annotated[Storage, Depends(get_storage)]


async def get_bearer_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str | None:
    """Extract the bearer credential, if any."""
    if not credentials:
        return None
    return credentials.credentials


async def get_optional_user(
    request: Request,
    token: Annotated[str | None, Depends(get_bearer_token)],
    storage: StorageDep,
) -> User | None:
    """Get current user if authenticated, otherwise None.

    Accepts a session token or a JWT issued at login. An AuditActor
    snapshot of the user goes on request.state for the audit trail.

    Args:
        request: FastAPI request
        token: Bearer credential
        storage: Storage handle

    Returns:
        User if authenticated, None otherwise
    """
    if not token:
        return None

    user = await AuthService(storage).resolve_bearer(token)
    if user is not None:
        request.state.audit_actor = AuditActor.from_user(user)
    return user


async def get_current_user(
    user: Annotated[User | None, Depends(get_optional_user)],
) -> User:
    """Get the current authenticated user.

    Raises:
        HTTPException: If the session is missing, unknown or expired
    """
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_current_dentist(
    user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Get the current user, requiring a dentist linked to a practice.

    Raises:
        HTTPException: If the user is not a dentist of any practice
    """
    if not user.is_dentist:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Dentist account required.",
        )
    if user.practice_id is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Dentist account is not linked to a practice",
        )
    return user


async def get_consented_user(
    user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Get the current user, requiring valid GDPR consent.

    Raises:
        HTTPException: If consent is missing or retention has expired
    """
    try:
        check_data_access(user)
    except AuthorizationError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    return user


def audit_action(action: str, resource_type: str, resource_param: str | None = None):
    """Create a dependency that declares how a route is audited.

    Usage:
        @router.post(
            "/{booking_id}/approve",
            dependencies=[Depends(audit_action("approve", "booking", "booking_id"))],
        )

    Args:
        action: Action recorded for the route
        resource_type: Resource type recorded for the route
        resource_param: Path parameter holding the resource id

    Returns:
        Dependency function
    """
    spec = AuditSpec(action=action, resource_type=resource_type, resource_param=resource_param)

    async def declare_audit(request: Request) -> AuditSpec:
        request.state.audit_spec = spec

        body = None
        if await request.body():
            try:
                body = await request.json()
            except ValueError:
                body = None
        request.state.audit_body = sanitize_request_body(body)

        if resource_param:
            raw_id = request.path_params.get(resource_param)
            if raw_id is not None and str(raw_id).isdigit():
                request.state.audit_resource_id = int(raw_id)

        return spec

    return declare_audit


def set_audit_resource(request: Request, resource_id: int) -> None:
    """Record the id of a resource the route just created."""
    request.state.audit_resource_id = resource_id


# Type aliases for cleaner dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]
CurrentDentist = Annotated[User, Depends(get_current_dentist)]
ConsentedUser = Annotated[User, Depends(get_consented_user)]
OptionalUser = Annotated[User | None, Depends(get_optional_user)]
