"""
Students Router

Endpoints:
- POST /students - Enroll a student (school only)
- GET /students - List the school's students with certificate counts (school only)
- GET /students/search?q= - Search students by email or student ID (company only)
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from certvault.core.auth import PrincipalContext, require_role
from certvault.core.database import get_db
from certvault.modules.principals.models import Role
from certvault.modules.students import service
from certvault.modules.students.schemas import (
    StudentEnrollRequest,
    StudentResponse,
    StudentSearchResponse,
    StudentSearchResult,
    StudentWithCertificateCount,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=StudentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll Student",
)
async def enroll_student(
    data: StudentEnrollRequest,
    school: PrincipalContext = Depends(require_role(Role.SCHOOL)),
    db: AsyncSession = Depends(get_db),
) -> StudentResponse:
    """
    Enroll a student under the calling school.

    Validation (name length, email format, enrollment year range) happens
    before anything is written.
    """
    try:
        student = await service.enroll_student(db, school, data)
        return StudentResponse.model_validate(student)
    except Exception as e:
        logger.exception(f"Unexpected error enrolling student for school {school.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "INTERNAL_ERROR",
                "message": "Failed to enroll student. Please try again later.",
            },
        ) from e


@router.get(
    "",
    response_model=list[StudentWithCertificateCount],
    summary="List Enrolled Students",
)
async def list_students(
    school: PrincipalContext = Depends(require_role(Role.SCHOOL)),
    db: AsyncSession = Depends(get_db),
) -> list[StudentWithCertificateCount]:
    """List the calling school's students with their certificate counts."""
    return await service.list_school_students(db, school)


@router.get(
    "/search",
    response_model=StudentSearchResponse,
    summary="Search Students",
)
async def search_students(
    q: str = Query(..., min_length=1, max_length=255, description="Email or student ID"),
    company: PrincipalContext = Depends(require_role(Role.COMPANY)),
    db: AsyncSession = Depends(get_db),
) -> StudentSearchResponse:
    """
    Search students by exact email; if none match, by exact student ID.

    Results never include certificates.
    """
    students = await service.search_students(db, q)
    logger.info(f"Company {company.id} searched students ({len(students)} result(s))")
    return StudentSearchResponse(
        query=q.strip(),
        results=[StudentSearchResult.model_validate(s) for s in students],
    )
