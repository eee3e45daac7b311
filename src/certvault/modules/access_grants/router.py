"""
Access Requests Router

Endpoints:
- POST /access-requests - Request access to a student's certificates (company)
- GET /access-requests/company - The company's requests (company)
- GET /access-requests/student - Requests addressed to the student (student)
- POST /access-requests/{id}/respond - Approve or deny a pending request (student)
- POST /access-requests/{id}/revoke - Revoke an approved request (student)

Rate limiting applies to request submission, per company.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from certvault.core.auth import PrincipalContext, require_role
from certvault.core.database import get_db
from certvault.core.exceptions import ServiceError, raise_http_error
from certvault.core.rate_limit import enforce_rate_limit
from certvault.modules.access_grants import service
from certvault.modules.access_grants.schemas import (
    AccessGrantResponse,
    AccessRequestCreate,
    CompanyGrantView,
    GrantDecisionRequest,
)
from certvault.modules.access_grants.service import DuplicatePendingRequestError
from certvault.modules.principals.models import Role

logger = logging.getLogger(__name__)

router = APIRouter()

# Access requests per company per hour
REQUEST_RATE_LIMIT = 30
REQUEST_RATE_WINDOW_SECONDS = 3600


@router.post(
    "",
    response_model=AccessGrantResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request Certificate Access",
    responses={
        404: {"description": "Student not found"},
        409: {
            "description": "A pending request already exists for this student",
            "content": {
                "application/json": {
                    "example": {
                        "detail": {
                            "error": "DUPLICATE_PENDING_REQUEST",
                            "message": "You already have a pending access request for this student.",
                        }
                    }
                }
            },
        },
        429: {"description": "Too many requests"},
    },
)
async def request_access(
    data: AccessRequestCreate,
    company: PrincipalContext = Depends(require_role(Role.COMPANY)),
    db: AsyncSession = Depends(get_db),
) -> AccessGrantResponse:
    """
    Ask a student for access to their certificates.

    The student is notified by email. Only one pending request per student
    is allowed; a new one can be made once the previous one is answered.
    """
    await enforce_rate_limit(
        "access_request", company.id, REQUEST_RATE_LIMIT, REQUEST_RATE_WINDOW_SECONDS
    )

    try:
        grant = await service.request_access(
            db, company, str(data.student_id), data.message
        )
        return AccessGrantResponse.model_validate(grant)
    except DuplicatePendingRequestError as e:
        logger.warning(f"Duplicate request rejected for company {company.id}: {e.message}")
        raise_http_error(e)
    except ServiceError as e:
        raise_http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error creating access request: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "INTERNAL_ERROR",
                "message": "An unexpected error occurred. Please try again later.",
            },
        ) from e


@router.get(
    "/company",
    response_model=list[CompanyGrantView],
    summary="List Company Requests",
)
async def list_company_requests(
    company: PrincipalContext = Depends(require_role(Role.COMPANY)),
    db: AsyncSession = Depends(get_db),
) -> list[CompanyGrantView]:
    """
    The company's requests: pending first, then approved, then denied and
    revoked, newest first within each group. Approved requests carry the
    student's certificates.
    """
    return await service.list_company_requests(db, company)


@router.get(
    "/student",
    response_model=list[AccessGrantResponse],
    summary="List Student Requests",
)
async def list_student_requests(
    student: PrincipalContext = Depends(require_role(Role.STUDENT)),
    db: AsyncSession = Depends(get_db),
) -> list[AccessGrantResponse]:
    """Requests addressed to the signed-in student, in display order."""
    grants = await service.list_student_requests(db, student)
    return [AccessGrantResponse.model_validate(grant) for grant in grants]


@router.post(
    "/{grant_id}/respond",
    response_model=AccessGrantResponse,
    summary="Approve or Deny Request",
    responses={
        404: {"description": "Request not found"},
        409: {"description": "Request is no longer pending"},
    },
)
async def respond_to_request(
    grant_id: UUID,
    data: GrantDecisionRequest,
    student: PrincipalContext = Depends(require_role(Role.STUDENT)),
    db: AsyncSession = Depends(get_db),
) -> AccessGrantResponse:
    """Approve or deny a pending request. The company is notified by email."""
    try:
        grant = await service.respond_to_request(db, student, str(grant_id), data.status)
        return AccessGrantResponse.model_validate(grant)
    except ServiceError as e:
        raise_http_error(e)


@router.post(
    "/{grant_id}/revoke",
    response_model=AccessGrantResponse,
    summary="Revoke Access",
    responses={
        404: {"description": "Request not found"},
        409: {"description": "Request is not approved"},
    },
)
async def revoke_access(
    grant_id: UUID,
    student: PrincipalContext = Depends(require_role(Role.STUDENT)),
    db: AsyncSession = Depends(get_db),
) -> AccessGrantResponse:
    """
    Revoke an approved request.

    The company immediately stops seeing the student's certificates.
    Revoked requests are final; the company must send a new request.
    """
    try:
        grant = await service.revoke_access(db, student, str(grant_id))
        return AccessGrantResponse.model_validate(grant)
    except ServiceError as e:
        raise_http_error(e)
