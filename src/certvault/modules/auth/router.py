"""
Authentication router.

Endpoints:
- POST /auth/register - Create a school, student or company account
- POST /auth/login - Exchange credentials for tokens
- POST /auth/refresh - Exchange a refresh token for a new access token
- GET /auth/session - Resolve the current token into a principal and workspace

Login and registration are rate limited per client IP.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from certvault.core.auth import (
    PrincipalContext,
    can_access_path,
    get_current_principal,
    resolve_redirect,
    workspace_for,
)
from certvault.core.database import get_db
from certvault.core.rate_limit import rate_limit_by_ip
from certvault.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)
from certvault.modules.auth.schemas import (
    AccessTokenResponse,
    AuthResponse,
    LoginRequest,
    PrincipalResponse,
    RefreshRequest,
    RegisterRequest,
    SessionResponse,
)
from certvault.modules.principals.models import Principal
from certvault.modules.principals.repository import PrincipalRepository

logger = logging.getLogger(__name__)

router = APIRouter()


def _email_taken() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={
            "error": "EMAIL_ALREADY_REGISTERED",
            "message": "An account with this email already exists.",
        },
    )


def _invalid_credentials() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={
            "error": "INVALID_CREDENTIALS",
            "message": "Invalid email or password.",
        },
    )


def _issue_tokens(principal: Principal) -> AuthResponse:
    additional_claims = {
        "email": principal.email,
        "role": principal.role.value,
    }
    return AuthResponse(
        access_token=create_access_token(
            subject=str(principal.id),
            additional_claims=additional_claims,
        ),
        refresh_token=create_refresh_token(subject=str(principal.id)),
        principal=PrincipalResponse.model_validate(principal),
        redirect_to=workspace_for(principal.role),
    )


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit_by_ip("register", limit=5, window_seconds=3600))],
)
async def register(
    data: RegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> AuthResponse:
    """
    Create an account and sign it in.

    Raises:
        HTTPException 409: Email already registered
    """
    if await PrincipalRepository.email_exists(db, data.email):
        logger.warning(f"Registration attempt for existing email: {data.email}")
        raise _email_taken()

    try:
        principal = await PrincipalRepository.create(
            db,
            email=data.email,
            password_hash=hash_password(data.password),
            role=data.role,
            display_name=data.display_name,
        )
    except IntegrityError as e:
        await db.rollback()
        raise _email_taken() from e

    logger.info(f"Principal registered: {principal.email} (role: {principal.role.value})")
    return _issue_tokens(principal)


@router.post(
    "/login",
    response_model=AuthResponse,
    dependencies=[Depends(rate_limit_by_ip("login", limit=10, window_seconds=60))],
)
async def login(
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> AuthResponse:
    """
    Authenticate and return JWT tokens with the role's workspace path.

    Raises:
        HTTPException 401: Invalid credentials
    """
    principal = await PrincipalRepository.get_by_email(db, credentials.email)

    if not principal:
        logger.warning(f"Login attempt for non-existent email: {credentials.email}")
        raise _invalid_credentials()

    if not verify_password(credentials.password, principal.password_hash):
        logger.warning(f"Invalid password for principal: {credentials.email}")
        raise _invalid_credentials()

    logger.info(f"Principal logged in: {principal.email} (role: {principal.role.value})")
    return _issue_tokens(principal)


@router.post("/refresh", response_model=AccessTokenResponse)
async def refresh(
    data: RefreshRequest,
    db: AsyncSession = Depends(get_db),
) -> AccessTokenResponse:
    """
    Exchange a refresh token for a new access token.

    Raises:
        HTTPException 401: Invalid or expired refresh token, or unknown principal
    """
    payload = decode_token(data.refresh_token)
    if payload is None or payload.get("type") != "refresh" or not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": "INVALID_REFRESH_TOKEN",
                "message": "Invalid or expired refresh token.",
            },
        )

    principal = await PrincipalRepository.get_by_id(db, payload["sub"])
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": "UNKNOWN_PRINCIPAL",
                "message": "The account for this token no longer exists.",
            },
        )

    return AccessTokenResponse(
        access_token=create_access_token(
            subject=str(principal.id),
            additional_claims={"email": principal.email, "role": principal.role.value},
        )
    )


@router.get("/session", response_model=SessionResponse)
async def session(
    path: str | None = Query(None, description="Path the client is currently showing"),
    principal: PrincipalContext = Depends(get_current_principal),
) -> SessionResponse:
    """
    Resolve the signed-in principal.

    ``redirect_to`` is set only when the client is on the entry screen.
    ``path_allowed`` tells whether the role may open ``path``; it is None
    when no workspace path was given.
    """
    path_allowed = None
    if path is not None and path.rstrip("/"):
        path_allowed = can_access_path(principal.role, path)

    return SessionResponse(
        id=principal.id,
        email=principal.email,
        role=principal.role,
        display_name=principal.display_name,
        workspace=workspace_for(principal.role),
        redirect_to=resolve_redirect(principal, path),
        path_allowed=path_allowed,
    )
