"""
Dashboards Router

Endpoints:
- GET /dashboard/school - Students with certificate counts (school)
- GET /dashboard/student - Own certificates and pending request count (student)
- GET /dashboard/company - Access request counts per status (company)
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from certvault.core.auth import PrincipalContext, require_role
from certvault.core.database import get_db
from certvault.modules.dashboards import service
from certvault.modules.dashboards.schemas import (
    CompanyDashboard,
    SchoolDashboard,
    StudentDashboard,
)
from certvault.modules.principals.models import Role

router = APIRouter()


@router.get("/school", response_model=SchoolDashboard, summary="School Dashboard")
async def school_dashboard(
    school: PrincipalContext = Depends(require_role(Role.SCHOOL)),
    db: AsyncSession = Depends(get_db),
) -> SchoolDashboard:
    return await service.get_school_dashboard(db, school)


@router.get("/student", response_model=StudentDashboard, summary="Student Dashboard")
async def student_dashboard(
    student: PrincipalContext = Depends(require_role(Role.STUDENT)),
    db: AsyncSession = Depends(get_db),
) -> StudentDashboard:
    return await service.get_student_dashboard(db, student)


@router.get("/company", response_model=CompanyDashboard, summary="Company Dashboard")
async def company_dashboard(
    company: PrincipalContext = Depends(require_role(Role.COMPANY)),
    db: AsyncSession = Depends(get_db),
) -> CompanyDashboard:
    return await service.get_company_dashboard(db, company)
