"""Dashboard schemas."""

from pydantic import BaseModel

from certvault.modules.access_grants.schemas import GrantStatusCounts
from certvault.modules.certificates.schemas import CertificateResponse
from certvault.modules.students.schemas import StudentWithCertificateCount


class SchoolDashboard(BaseModel):
    school_name: str | None
    student_count: int
    certificate_count: int
    students: list[StudentWithCertificateCount]


class StudentDashboard(BaseModel):
    """
    The student's own certificates.

    ``enrolled`` is false until a school enrolls the student's email.
    """

    enrolled: bool
    certificates: list[CertificateResponse]
    pending_request_count: int


class CompanyDashboard(BaseModel):
    company_name: str | None
    requests: GrantStatusCounts
