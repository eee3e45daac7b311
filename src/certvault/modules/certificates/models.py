"""
Certificate Models

A certificate is written once by the issuing school and never updated.
"""

from datetime import date, datetime

from sqlalchemy import BigInteger, Date, DateTime, ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from certvault.modules.shared import BaseModel

DIGEST_LENGTH = 64  # SHA-256 hex


class Certificate(BaseModel):
    """
    An issued certificate and the location of its file.

    ``file_digest`` is the SHA-256 of the exact bytes uploaded, computed
    before they were handed to storage. It is not re-checked on reads.
    """

    __tablename__ = "certificates"

    school_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("principals.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    student_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("students.id", ondelete="RESTRICT"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    upload_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Stored file
    file_location: Mapped[str] = mapped_column(String(500), unique=True, nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_type: Mapped[str] = mapped_column(String(100), nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    file_digest: Mapped[str] = mapped_column(String(DIGEST_LENGTH), nullable=False)

    __table_args__ = (
        Index("ix_certificates_student_id", "student_id"),
        Index("ix_certificates_file_digest", "file_digest"),
    )

    def __repr__(self) -> str:
        return f"<Certificate(id={self.id}, student_id={self.student_id})>"
