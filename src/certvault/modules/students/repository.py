"""
Student Repository

Database operations for student records.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import StudentRecord
from .schemas import StudentEnrollRequest


async def create(db: AsyncSession, school_id: str, data: StudentEnrollRequest) -> StudentRecord:
    """Create a student record owned by ``school_id``."""

    student = StudentRecord(
        school_id=school_id,
        name=data.name,
        email=data.email,
        external_student_id=data.student_id,
        program=data.program,
        enrollment_year=data.enrollment_year,
    )

    db.add(student)
    await db.commit()
    await db.refresh(student)

    return student


async def get_by_id(db: AsyncSession, id: str) -> StudentRecord | None:
    """Get a student record by ID."""
    return await db.get(StudentRecord, id)


async def list_by_school(db: AsyncSession, school_id: str) -> list[StudentRecord]:
    """All students enrolled by a school, oldest enrollment first."""
    result = await db.execute(
        select(StudentRecord)
        .where(StudentRecord.school_id == school_id)
        .order_by(StudentRecord.created_at)
    )
    return list(result.scalars().all())


async def list_by_email(db: AsyncSession, email: str) -> list[StudentRecord]:
    """
    Student records with the given email (case-insensitive).

    One person may be enrolled by several schools, so this can return
    more than one record.
    """
    result = await db.execute(
        select(StudentRecord).where(func.lower(StudentRecord.email) == email.lower())
    )
    return list(result.scalars().all())


async def list_by_external_id(db: AsyncSession, external_student_id: str) -> list[StudentRecord]:
    """Student records carrying the given school-issued student ID."""
    result = await db.execute(
        select(StudentRecord).where(StudentRecord.external_student_id == external_student_id)
    )
    return list(result.scalars().all())
