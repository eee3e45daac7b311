"""create certvault schema

Revision ID: a0c1e2f3b4d5
Revises:
Create Date: 2026-10-18 09:00:00.000000

This migration:
1. Creates the principal_role and grant_status enum types
2. Creates principals, students, certificates and access_grants
3. Adds the partial unique index allowing one pending grant per
   (company, student) pair

Foreign keys use ON DELETE RESTRICT: no record is ever removed by cascade.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "a0c1e2f3b4d5"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _id_and_timestamps() -> list[sa.Column]:
    return [
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Create all tables, enum types and indexes."""
    principal_role = postgresql.ENUM(
        "school", "student", "company", name="principal_role", create_type=False
    )
    principal_role.create(op.get_bind(), checkfirst=True)

    grant_status = postgresql.ENUM(
        "pending", "approved", "denied", "revoked", name="grant_status", create_type=False
    )
    grant_status.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "principals",
        *_id_and_timestamps(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("role", principal_role, nullable=False),
        sa.Column("display_name", sa.String(length=200), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_principals_email", "principals", ["email"], unique=True)

    op.create_table(
        "students",
        *_id_and_timestamps(),
        sa.Column("school_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("external_student_id", sa.String(length=100), nullable=False),
        sa.Column("program", sa.String(length=200), nullable=False),
        sa.Column("enrollment_year", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["school_id"], ["principals.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_students_school_id", "students", ["school_id"])
    op.create_index("ix_students_email", "students", ["email"])
    op.create_index("ix_students_external_student_id", "students", ["external_student_id"])

    op.create_table(
        "certificates",
        *_id_and_timestamps(),
        sa.Column("school_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("student_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("issue_date", sa.Date(), nullable=False),
        sa.Column("upload_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("file_location", sa.String(length=500), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("file_type", sa.String(length=100), nullable=False),
        sa.Column("file_size", sa.BigInteger(), nullable=False),
        sa.Column("file_digest", sa.String(length=64), nullable=False),
        sa.ForeignKeyConstraint(["school_id"], ["principals.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["student_id"], ["students.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("file_location"),
    )
    op.create_index("ix_certificates_school_id", "certificates", ["school_id"])
    op.create_index("ix_certificates_student_id", "certificates", ["student_id"])
    op.create_index("ix_certificates_file_digest", "certificates", ["file_digest"])

    op.create_table(
        "access_grants",
        *_id_and_timestamps(),
        sa.Column("company_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("company_name", sa.String(length=200), nullable=False),
        sa.Column("company_email", sa.String(length=255), nullable=False),
        sa.Column("student_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("student_name", sa.String(length=200), nullable=False),
        sa.Column("student_email", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("status", grant_status, nullable=False),
        sa.Column("request_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("response_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reminder_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["company_id"], ["principals.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["student_id"], ["students.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_access_grants_company_id", "access_grants", ["company_id"])
    op.create_index(
        "ix_access_grants_student_status", "access_grants", ["student_id", "status"]
    )
    op.create_index(
        "uq_access_grants_pending_pair",
        "access_grants",
        ["company_id", "student_id"],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
    )


def downgrade() -> None:
    """Drop everything created in upgrade, dependants first."""
    op.drop_index("uq_access_grants_pending_pair", table_name="access_grants")
    op.drop_index("ix_access_grants_student_status", table_name="access_grants")
    op.drop_index("ix_access_grants_company_id", table_name="access_grants")
    op.drop_table("access_grants")

    op.drop_index("ix_certificates_file_digest", table_name="certificates")
    op.drop_index("ix_certificates_student_id", table_name="certificates")
    op.drop_index("ix_certificates_school_id", table_name="certificates")
    op.drop_table("certificates")

    op.drop_index("ix_students_external_student_id", table_name="students")
    op.drop_index("ix_students_email", table_name="students")
    op.drop_index("ix_students_school_id", table_name="students")
    op.drop_table("students")

    op.drop_index("ix_principals_email", table_name="principals")
    op.drop_table("principals")

    postgresql.ENUM(name="grant_status").drop(op.get_bind(), checkfirst=True)
    postgresql.ENUM(name="principal_role").drop(op.get_bind(), checkfirst=True)
