"""
Certificate Schemas

Pydantic schemas for certificate responses.
"""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict


class CertificateResponse(BaseModel):
    """A certificate as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    issue_date: date
    upload_date: datetime
    file_name: str
    file_type: str
    file_size: int
    file_digest: str
    school_id: str
    student_id: str


class CertificateIssueResponse(BaseModel):
    """Response after issuing a certificate."""

    certificate: CertificateResponse
    message: str


class CertificateVerificationResponse(BaseModel):
    """Result of re-hashing a stored certificate file."""

    certificate_id: str
    recorded_digest: str
    computed_digest: str
    matches: bool
    verified_at: datetime


class StudentCertificatesResponse(BaseModel):
    """A student's certificates as seen by a company with an approved grant."""

    student_id: str
    certificates: list[CertificateResponse]
