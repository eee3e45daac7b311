"""
Student Models

A student record is created by a school and belongs to that school for its
whole lifetime. Certificates and access grants reference it.
"""

from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from certvault.modules.shared import BaseModel


class StudentRecord(BaseModel):
    """
    A student enrolled by a school.

    ``school_id`` is set at enrollment and never updated. Deleting the
    owning school, or a student that still has certificates or grants,
    is refused by the database (ON DELETE RESTRICT).
    """

    __tablename__ = "students"

    school_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("principals.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    external_student_id: Mapped[str] = mapped_column(String(100), nullable=False)
    program: Mapped[str] = mapped_column(String(200), nullable=False)
    enrollment_year: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        Index("ix_students_email", "email"),
        Index("ix_students_external_student_id", "external_student_id"),
    )

    def __repr__(self) -> str:
        return f"<StudentRecord(id={self.id}, school_id={self.school_id})>"
