"""
Shared fixtures: a mock database session, one principal per role and
factories for model instances.
"""

import os

# Must be set before certvault.core.config is imported
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("PYTHON_ENV", "test")

from datetime import UTC, date, datetime, timedelta  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402
from uuid import uuid4  # noqa: E402

import pytest  # noqa: E402

from certvault.core.auth import PrincipalContext  # noqa: E402
from certvault.core.rate_limit import reset_memory_store  # noqa: E402
from certvault.modules.access_grants.models import AccessGrant, GrantStatus  # noqa: E402
from certvault.modules.certificates.models import Certificate  # noqa: E402
from certvault.modules.principals.models import Role  # noqa: E402
from certvault.modules.students.models import StudentRecord  # noqa: E402


@pytest.fixture(autouse=True)
def _clear_rate_limits():
    reset_memory_store()
    yield
    reset_memory_store()


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.get = AsyncMock()
    db.execute = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
def school():
    return PrincipalContext(
        id=str(uuid4()),
        email="registrar@university.edu",
        role=Role.SCHOOL,
        display_name="State University",
    )


@pytest.fixture
def student():
    return PrincipalContext(
        id=str(uuid4()),
        email="ada@example.com",
        role=Role.STUDENT,
    )


@pytest.fixture
def company():
    return PrincipalContext(
        id=str(uuid4()),
        email="hr@acme.com",
        role=Role.COMPANY,
        display_name="Acme Corp",
    )


@pytest.fixture
def make_student_record(school, student):
    """Build StudentRecord instances owned by the ``school`` fixture."""

    def _make(**overrides) -> StudentRecord:
        fields = {
            "id": str(uuid4()),
            "school_id": school.id,
            "name": "Ada Lovelace",
            "email": student.email,
            "external_student_id": "S-1001",
            "program": "Mathematics",
            "enrollment_year": 2021,
            "created_at": datetime.now(UTC),
        }
        fields.update(overrides)
        return StudentRecord(**fields)

    return _make


@pytest.fixture
def student_record(make_student_record):
    return make_student_record()


@pytest.fixture
def make_certificate(school, student_record):
    """Build Certificate instances issued by ``school`` to ``student_record``."""

    def _make(**overrides) -> Certificate:
        fields = {
            "id": str(uuid4()),
            "school_id": school.id,
            "student_id": student_record.id,
            "name": "BSc Mathematics",
            "issue_date": date(2024, 6, 30),
            "upload_date": datetime.now(UTC),
            "file_location": f"certificates/{school.id}/{student_record.id}/{uuid4()}.pdf",
            "file_name": "diploma.pdf",
            "file_type": "application/pdf",
            "file_size": 11,
            "file_digest": "0" * 64,
        }
        fields.update(overrides)
        return Certificate(**fields)

    return _make


@pytest.fixture
def make_grant(company, student_record):
    """Build AccessGrant instances from ``company`` for ``student_record``."""

    def _make(
        status: GrantStatus = GrantStatus.PENDING,
        requested_hours_ago: float = 1,
        **overrides,
    ) -> AccessGrant:
        fields = {
            "id": str(uuid4()),
            "company_id": company.id,
            "company_name": company.display_name,
            "company_email": company.email,
            "student_id": student_record.id,
            "student_name": student_record.name,
            "student_email": student_record.email,
            "message": "We'd like to verify your degree.",
            "status": status,
            "request_date": datetime.now(UTC) - timedelta(hours=requested_hours_ago),
            "response_date": None,
            "revoked_date": None,
            "reminder_sent_at": None,
        }
        fields.update(overrides)
        return AccessGrant(**fields)

    return _make
