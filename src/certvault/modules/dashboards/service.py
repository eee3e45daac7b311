"""
Dashboards Service Layer

Read-only summaries for each role's workspace landing page. Everything
here is assembled from the students, certificates and access grant
modules; nothing is written.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from certvault.core.auth import PrincipalContext
from certvault.modules.access_grants import service as access_grant_service
from certvault.modules.certificates import repository as certificate_repository
from certvault.modules.certificates.schemas import CertificateResponse
from certvault.modules.dashboards.schemas import (
    CompanyDashboard,
    SchoolDashboard,
    StudentDashboard,
)
from certvault.modules.students import service as student_service


async def get_school_dashboard(db: AsyncSession, school: PrincipalContext) -> SchoolDashboard:
    students = await student_service.list_school_students(db, school)
    return SchoolDashboard(
        school_name=school.display_name,
        student_count=len(students),
        certificate_count=sum(s.certificate_count for s in students),
        students=students,
    )


async def get_student_dashboard(db: AsyncSession, student: PrincipalContext) -> StudentDashboard:
    records = await student_service.get_records_for_student(db, student)
    record_ids = [record.id for record in records]

    certificates = await certificate_repository.list_by_students(db, record_ids)
    pending = await access_grant_service.count_pending_requests(db, student)

    return StudentDashboard(
        enrolled=bool(records),
        certificates=[CertificateResponse.model_validate(c) for c in certificates],
        pending_request_count=pending,
    )


async def get_company_dashboard(db: AsyncSession, company: PrincipalContext) -> CompanyDashboard:
    return CompanyDashboard(
        company_name=company.display_name,
        requests=await access_grant_service.count_company_requests(db, company),
    )
