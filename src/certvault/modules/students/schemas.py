"""
Student Schemas

Pydantic schemas for enrollment requests and student responses.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

MIN_ENROLLMENT_YEAR = 1900


class StudentEnrollRequest(BaseModel):
    """Request body for POST /students."""

    name: str = Field(..., min_length=2, max_length=200)
    email: EmailStr
    student_id: str = Field(..., min_length=1, max_length=100)
    program: str = Field(..., min_length=1, max_length=200)
    enrollment_year: int

    @field_validator("name", "student_id", "program")
    @classmethod
    def strip_whitespace(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped

    @field_validator("enrollment_year")
    @classmethod
    def validate_enrollment_year(cls, value: int) -> int:
        current_year = datetime.now().year
        if value <= MIN_ENROLLMENT_YEAR or value > current_year:
            raise ValueError(
                f"enrollment_year must be after {MIN_ENROLLMENT_YEAR} and not after {current_year}"
            )
        return value


class StudentResponse(BaseModel):
    """A student record as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    external_student_id: str
    program: str
    enrollment_year: int
    school_id: str
    created_at: datetime


class StudentWithCertificateCount(BaseModel):
    """Row of the school dashboard student list."""

    id: str
    name: str
    email: str
    external_student_id: str
    certificate_count: int


class StudentSearchResult(BaseModel):
    """
    Student found by a company search.

    Carries no certificate data; certificates are only visible through an
    approved access grant.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    external_student_id: str
    program: str
    enrollment_year: int


class StudentSearchResponse(BaseModel):
    """Response for GET /students/search."""

    query: str
    results: list[StudentSearchResult]
