"""Authentication endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.api.deps import (
    CurrentUser,
    StorageDep,
    audit_action,
    get_bearer_token,
    set_audit_resource,
)
from app.core.config import settings
from app.core.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from app.schemas.auth import (
    LoginRequest,
    LoginResponse,
    LogoutResponse,
    RegisterRequest,
    UserResponse,
    VerifyPracticeTagRequest,
)
from app.schemas.practice import PracticeResponse
from app.services.audit import AuditActor
from app.services.auth import AuthService, PasswordPolicyError

router = APIRouter()


async def _start_session(
    request: Request, auth_service: AuthService, user
) -> LoginResponse:
    session = await auth_service.create_session(user.id)
    request.state.audit_actor = AuditActor.from_user(user)
    set_audit_resource(request, user.id)
    return LoginResponse(
        token=session.id,
        access_token=auth_service.create_token(user, session),
        token_type="bearer",
        expires_in=settings.access_token_expire_minutes * 60,
        user=UserResponse.model_validate(user),
    )


@router.post(
    "/register",
    response_model=LoginResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    description="Create a patient or dentist account and sign it in",
    dependencies=[Depends(audit_action("signup", "user"))],
)
async def register(
    request: Request,
    data: RegisterRequest,
    storage: StorageDep,
) -> LoginResponse:
    """Register a new account.

    Dentists must present their practice's connection tag.

    Raises:
        HTTPException: 400 for weak passwords or a missing tag, 404 for an
            unknown tag, 409 if the email is taken
    """
    auth_service = AuthService(storage)
    try:
        user = await auth_service.register(data)
    except PasswordPolicyError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": e.message, "errors": e.errors},
        )
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)

    return await _start_session(request, auth_service, user)


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    summary="Login",
    description="Authenticate with email and password",
    dependencies=[Depends(audit_action("login", "auth"))],
)
async def login(
    request: Request,
    credentials: LoginRequest,
    storage: StorageDep,
) -> LoginResponse:
    """Authenticate a user and return a session token and JWT.

    Raises:
        HTTPException: 401 for any credential failure
    """
    auth_service = AuthService(storage)
    try:
        user = await auth_service.authenticate(
            email=credentials.email,
            password=credentials.password,
            user_type=credentials.user_type,
        )
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
        )

    return await _start_session(request, auth_service, user)


@router.post(
    "/logout",
    response_model=LogoutResponse,
    status_code=status.HTTP_200_OK,
    summary="Logout",
    dependencies=[Depends(audit_action("logout", "auth"))],
)
async def logout(
    user: CurrentUser,
    storage: StorageDep,
    token: Annotated[str | None, Depends(get_bearer_token)],
) -> LogoutResponse:
    """Invalidate the session behind the bearer credential."""
    await AuthService(storage).invalidate_session(AuthService.session_id_from_bearer(token))
    return LogoutResponse(message="Logged out successfully")


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Current user",
)
async def me(user: CurrentUser) -> UserResponse:
    """Return the signed-in user."""
    return UserResponse.model_validate(user)


@router.post(
    "/verify-practice-tag",
    response_model=PracticeResponse,
    summary="Verify practice connection tag",
)
async def verify_practice_tag(
    data: VerifyPracticeTagRequest,
    storage: StorageDep,
) -> PracticeResponse:
    """Look up the practice a connection tag belongs to.

    Raises:
        HTTPException: 404 if the tag is unknown
    """
    try:
        practice = await AuthService(storage).verify_practice_tag(data.practice_tag)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    return PracticeResponse.model_validate(practice)
