"""
Principal Models

Database model for authenticated actors. Every principal has exactly one
role, fixed when the account is created.
"""

from enum import Enum

from sqlalchemy import String, Text
from sqlalchemy.dialects.postgresql import ENUM
from sqlalchemy.orm import Mapped, mapped_column

from certvault.modules.shared import BaseModel


class Role(str, Enum):
    """Roles a principal can hold. Adding a member requires a workspace entry."""

    SCHOOL = "school"
    STUDENT = "student"
    COMPANY = "company"


class Principal(BaseModel):
    """
    An authenticated actor: a school, a student or a company.

    The role is written once at sign-up and no code path updates it.
    For schools and companies ``display_name`` holds the institution name.
    """

    __tablename__ = "principals"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    role: Mapped[Role] = mapped_column(
        ENUM(
            Role,
            name="principal_role",
            create_type=True,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
    )
    display_name: Mapped[str | None] = mapped_column(
        String(200),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Principal(id={self.id}, email={self.email}, role={self.role.value})>"
