"""
Students Service Layer

Enrollment, the school's student list, company-side search and resolution
of the student records that belong to a signed-in student.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from certvault.core.auth import PrincipalContext
from certvault.core.exceptions import ServiceError
from certvault.modules.certificates import repository as certificate_repository
from certvault.modules.students import repository
from certvault.modules.students.models import StudentRecord
from certvault.modules.students.schemas import StudentEnrollRequest, StudentWithCertificateCount

logger = logging.getLogger(__name__)


class StudentNotFoundError(ServiceError):
    """Raised when a student does not exist or is not visible to the caller."""

    def __init__(self, student_id: str | None = None):
        message = f"Student {student_id} not found" if student_id else "Student not found"
        super().__init__(
            message=message,
            error_code="STUDENT_NOT_FOUND",
            status_code=404,
        )


async def enroll_student(
    db: AsyncSession,
    school: PrincipalContext,
    data: StudentEnrollRequest,
) -> StudentRecord:
    """
    Enroll a student under the calling school.

    Args:
        db: Database session
        school: The enrolling school
        data: Validated enrollment data

    Returns:
        The created StudentRecord
    """
    student = await repository.create(db, school.id, data)
    logger.info(f"School {school.id} enrolled student {student.id}")
    return student


async def get_owned_student(db: AsyncSession, school_id: str, student_id: str) -> StudentRecord:
    """
    Load a student that belongs to ``school_id``.

    Students of other schools are reported as not found.

    Raises:
        StudentNotFoundError: If missing or owned by another school
    """
    student = await repository.get_by_id(db, student_id)
    if student is None or student.school_id != school_id:
        raise StudentNotFoundError(student_id)
    return student


async def get_student(db: AsyncSession, student_id: str) -> StudentRecord:
    """
    Load any student by ID.

    Raises:
        StudentNotFoundError: If the student does not exist
    """
    student = await repository.get_by_id(db, student_id)
    if student is None:
        raise StudentNotFoundError(student_id)
    return student


async def list_school_students(
    db: AsyncSession,
    school: PrincipalContext,
) -> list[StudentWithCertificateCount]:
    """The school's students, each with the number of certificates issued."""
    students = await repository.list_by_school(db, school.id)
    counts = await certificate_repository.count_by_students(db, [s.id for s in students])

    return [
        StudentWithCertificateCount(
            id=student.id,
            name=student.name,
            email=student.email,
            external_student_id=student.external_student_id,
            certificate_count=counts.get(student.id, 0),
        )
        for student in students
    ]


async def search_students(db: AsyncSession, query: str) -> list[StudentRecord]:
    """
    Find students by exact email, falling back to exact student ID.

    Args:
        db: Database session
        query: Email address or school-issued student ID

    Returns:
        Matching student records (possibly empty)
    """
    term = query.strip()
    if not term:
        return []

    students = await repository.list_by_email(db, term)
    if not students:
        students = await repository.list_by_external_id(db, term)

    logger.info(f"Student search returned {len(students)} result(s)")
    return students


async def get_records_for_student(
    db: AsyncSession,
    student: PrincipalContext,
) -> list[StudentRecord]:
    """
    The student records that belong to a signed-in student.

    A student principal is linked to records by email. The list is empty
    until a school enrolls that email.
    """
    return await repository.list_by_email(db, student.email)
