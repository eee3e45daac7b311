"""
Access Grant Schemas

Pydantic schemas for access requests, decisions and grant listings.
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from certvault.modules.access_grants.models import GrantStatus
from certvault.modules.certificates.schemas import CertificateResponse

MAX_MESSAGE_LENGTH = 1000


class AccessRequestCreate(BaseModel):
    """Request body for POST /access-requests."""

    student_id: UUID
    message: str | None = Field(None, max_length=MAX_MESSAGE_LENGTH)

    @field_validator("message")
    @classmethod
    def blank_message_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        stripped = value.strip()
        return stripped or None


class GrantDecisionRequest(BaseModel):
    """Request body for POST /access-requests/{id}/respond."""

    decision: Literal["approved", "denied"]

    @property
    def status(self) -> GrantStatus:
        return GrantStatus(self.decision)


class AccessGrantResponse(BaseModel):
    """An access grant as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    company_id: str
    company_name: str
    company_email: str
    student_id: str
    student_name: str
    student_email: str
    message: str | None
    status: GrantStatus
    request_date: datetime
    response_date: datetime | None
    revoked_date: datetime | None


class CompanyGrantView(AccessGrantResponse):
    """
    A grant on the company requests page.

    ``certificates`` is filled only while the grant is approved.
    """

    certificates: list[CertificateResponse] = Field(default_factory=list)


class GrantStatusCounts(BaseModel):
    """Number of a company's grants in each status."""

    pending: int = 0
    approved: int = 0
    denied: int = 0
    revoked: int = 0
