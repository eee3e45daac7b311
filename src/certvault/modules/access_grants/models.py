"""
Access Grant Models

An access grant records a company's request to see a student's
certificates and the student's answer to it.
"""

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from certvault.modules.shared import BaseModel


class GrantStatus(str, enum.Enum):
    """Status of an access grant."""

    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    REVOKED = "revoked"


class AccessGrant(BaseModel):
    """
    A company's access request for one student's certificates.

    Company and student names/emails are copied in at request time so that
    both sides can list grants without further lookups.

    At most one grant per (company, student) pair may be pending. The
    partial unique index below enforces this in the database.
    """

    __tablename__ = "access_grants"

    # Company side
    company_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("principals.id", ondelete="RESTRICT"),
        nullable=False,
    )
    company_name: Mapped[str] = mapped_column(String(200), nullable=False)
    company_email: Mapped[str] = mapped_column(String(255), nullable=False)

    # Student side
    student_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("students.id", ondelete="RESTRICT"),
        nullable=False,
    )
    student_name: Mapped[str] = mapped_column(String(200), nullable=False)
    student_email: Mapped[str] = mapped_column(String(255), nullable=False)

    message: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Lifecycle
    status: Mapped[GrantStatus] = mapped_column(
        Enum(
            GrantStatus,
            name="grant_status",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
        default=GrantStatus.PENDING,
    )
    request_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    response_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    revoked_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Reminder tracking
    reminder_sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("ix_access_grants_company_id", "company_id"),
        Index("ix_access_grants_student_status", "student_id", "status"),
        Index(
            "uq_access_grants_pending_pair",
            "company_id",
            "student_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
        ),
    )

    def __repr__(self) -> str:
        return f"<AccessGrant(id={self.id}, status={self.status.value})>"
