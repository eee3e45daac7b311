"""
Certificate Repository

Database operations for certificates. Certificates are immutable once
written: there is no update or delete function.
"""

from datetime import date, datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Certificate


async def create(
    db: AsyncSession,
    *,
    school_id: str,
    student_id: str,
    name: str,
    issue_date: date,
    upload_date: datetime,
    file_location: str,
    file_name: str,
    file_type: str,
    file_size: int,
    file_digest: str,
) -> Certificate:
    """Create a certificate record."""

    certificate = Certificate(
        school_id=school_id,
        student_id=student_id,
        name=name,
        issue_date=issue_date,
        upload_date=upload_date,
        file_location=file_location,
        file_name=file_name,
        file_type=file_type,
        file_size=file_size,
        file_digest=file_digest,
    )

    db.add(certificate)
    await db.commit()
    await db.refresh(certificate)

    return certificate


async def get_by_id(db: AsyncSession, id: str) -> Certificate | None:
    """Get certificate by ID."""
    return await db.get(Certificate, id)


async def list_by_student(db: AsyncSession, student_id: str) -> list[Certificate]:
    """Certificates issued to one student, newest issue date first."""
    result = await db.execute(
        select(Certificate)
        .where(Certificate.student_id == student_id)
        .order_by(Certificate.issue_date.desc(), Certificate.upload_date.desc())
    )
    return list(result.scalars().all())


async def list_by_students(db: AsyncSession, student_ids: list[str]) -> list[Certificate]:
    """Certificates issued to any of the given students, newest issue date first."""
    if not student_ids:
        return []

    result = await db.execute(
        select(Certificate)
        .where(Certificate.student_id.in_(student_ids))
        .order_by(Certificate.issue_date.desc(), Certificate.upload_date.desc())
    )
    return list(result.scalars().all())


async def count_by_students(db: AsyncSession, student_ids: list[str]) -> dict[str, int]:
    """Number of certificates per student ID. Students without any are omitted."""
    if not student_ids:
        return {}

    result = await db.execute(
        select(Certificate.student_id, func.count(Certificate.id))
        .where(Certificate.student_id.in_(student_ids))
        .group_by(Certificate.student_id)
    )
    return {student_id: count for student_id, count in result.all()}
