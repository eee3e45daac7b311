"""
Authentication and Authorization Module

Provides the FastAPI dependencies that turn a bearer token into an explicit
``PrincipalContext`` for each request, plus the role-to-workspace routing
table used by clients to redirect after sign-in.

There is no process-wide "current user". Every handler that needs the
caller receives a ``PrincipalContext`` through ``get_current_principal``
(or ``require_role``), which is the single place where authentication
state is resolved.

The role always comes from the stored Principal record. Token claims are
informational for clients and are never used to decide the role.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from certvault.core.database import get_db
from certvault.core.security import decode_token
from certvault.modules.principals.models import Principal, Role
from certvault.modules.principals.repository import PrincipalRepository

logger = logging.getLogger(__name__)

# Security scheme for OpenAPI documentation
security = HTTPBearer(
    auto_error=True,
    description="JWT Bearer token for authentication",
)

ENTRY_PATH = "/"

# Workspace each role lands on after authentication
WORKSPACES: dict[Role, str] = {
    Role.SCHOOL: "/dashboard/school",
    Role.STUDENT: "/dashboard/student",
    Role.COMPANY: "/dashboard/company",
}

# Every workspace path a role may open
ROLE_ROUTES: dict[Role, tuple[str, ...]] = {
    Role.SCHOOL: (
        "/dashboard/school",
        "/dashboard/school/enroll",
        "/dashboard/school/upload",
    ),
    Role.STUDENT: (
        "/dashboard/student",
        "/dashboard/student/requests",
    ),
    Role.COMPANY: (
        "/dashboard/company",
        "/dashboard/company/requests",
    ),
}


@dataclass(frozen=True)
class PrincipalContext:
    """
    The authenticated caller of a request.

    Attributes:
        id: Principal ID
        email: Login email (lower-case)
        role: Fixed role of the principal
        display_name: School or company name, if any
    """

    id: str
    email: str
    role: Role
    display_name: str | None = None

    @classmethod
    def from_principal(cls, principal: Principal) -> "PrincipalContext":
        return cls(
            id=str(principal.id),
            email=principal.email,
            role=principal.role,
            display_name=principal.display_name,
        )

    def __str__(self) -> str:
        return f"PrincipalContext(id={self.id}, role={self.role.value})"


def workspace_for(role: Role) -> str:
    """Return the workspace path for a role."""
    return WORKSPACES[role]


def can_access_path(role: Role, path: str) -> bool:
    """Check whether a role may open a workspace path."""
    return path.rstrip("/") in ROLE_ROUTES[role]


def resolve_redirect(principal: PrincipalContext, current_path: str | None) -> str | None:
    """
    Decide where a freshly resolved principal should be sent.

    Only a principal positioned at the entry screen is redirected; anywhere
    else the client stays where it is.

    Returns:
        The workspace path, or None when no redirect is needed
    """
    if current_path is None or current_path.rstrip("/") == "":
        return workspace_for(principal.role)
    return None


def _unauthorized(error: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": error, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _resolve_principal(db: AsyncSession, token: str) -> PrincipalContext:
    """
    Validate an access token and load the principal it names.

    Raises:
        HTTPException 401: If the token is invalid, expired, not an access
            token, or names a principal that no longer exists
    """
    payload = decode_token(token)

    if payload is None:
        logger.warning("Invalid or expired JWT token")
        raise _unauthorized("INVALID_TOKEN", "Invalid or expired authentication token.")

    if payload.get("type", "access") != "access":
        logger.warning(f"Invalid token type: {payload.get('type')}")
        raise _unauthorized("INVALID_TOKEN_TYPE", "This endpoint requires an access token.")

    principal_id = payload.get("sub")
    if not principal_id:
        raise _unauthorized("INVALID_TOKEN_CLAIMS", "Token contains invalid or missing claims.")

    principal = await PrincipalRepository.get_by_id(db, principal_id)
    if principal is None:
        logger.warning(f"Token references unknown principal {principal_id}")
        raise _unauthorized("UNKNOWN_PRINCIPAL", "The account for this token no longer exists.")

    return PrincipalContext.from_principal(principal)


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> PrincipalContext:
    """
    FastAPI dependency returning the authenticated principal.

    Usage:
        @router.get("/me")
        async def me(principal: PrincipalContext = Depends(get_current_principal)):
            ...
    """
    principal = await _resolve_principal(db, credentials.credentials)
    logger.debug(f"Authenticated {principal}")
    return principal


def require_role(*roles: Role) -> Callable[..., Awaitable[PrincipalContext]]:
    """
    Build a dependency that only admits principals with one of ``roles``.

    Usage:
        @router.post("/students")
        async def enroll(school: PrincipalContext = Depends(require_role(Role.SCHOOL))):
            ...

    Raises:
        HTTPException 403: If the principal's role is not allowed
    """
    allowed = frozenset(roles)

    async def dependency(
        principal: PrincipalContext = Depends(get_current_principal),
    ) -> PrincipalContext:
        if principal.role not in allowed:
            logger.warning(
                f"Access denied: principal {principal.id} has role '{principal.role.value}', "
                f"required one of {sorted(r.value for r in allowed)}"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "error": "ROLE_FORBIDDEN",
                    "message": "Your account type cannot perform this action.",
                },
            )
        return principal

    return dependency


__all__ = [
    "PrincipalContext",
    "WORKSPACES",
    "ROLE_ROUTES",
    "workspace_for",
    "can_access_path",
    "resolve_redirect",
    "get_current_principal",
    "require_role",
]
