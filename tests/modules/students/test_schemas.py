"""Validation tests for student enrollment requests."""

from datetime import datetime

import pytest
from pydantic import ValidationError

from certvault.modules.students.schemas import StudentEnrollRequest


def _payload(**overrides):
    data = {
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "student_id": "S-1001",
        "program": "Mathematics",
        "enrollment_year": 2021,
    }
    data.update(overrides)
    return data


class TestStudentEnrollRequest:
    def test_valid_request(self):
        request = StudentEnrollRequest(**_payload())
        assert request.name == "Ada Lovelace"
        assert request.enrollment_year == 2021

    def test_fields_are_stripped(self):
        request = StudentEnrollRequest(**_payload(name="  Ada  ", program=" Maths "))
        assert request.name == "Ada"
        assert request.program == "Maths"

    def test_name_too_short(self):
        with pytest.raises(ValidationError):
            StudentEnrollRequest(**_payload(name="A"))

    def test_blank_student_id_rejected(self):
        with pytest.raises(ValidationError):
            StudentEnrollRequest(**_payload(student_id="   "))

    def test_invalid_email_rejected(self):
        with pytest.raises(ValidationError):
            StudentEnrollRequest(**_payload(email="not-an-email"))

    def test_year_1900_rejected(self):
        with pytest.raises(ValidationError):
            StudentEnrollRequest(**_payload(enrollment_year=1900))

    def test_year_1901_accepted(self):
        assert StudentEnrollRequest(**_payload(enrollment_year=1901)).enrollment_year == 1901

    def test_current_year_accepted(self):
        year = datetime.now().year
        assert StudentEnrollRequest(**_payload(enrollment_year=year)).enrollment_year == year

    def test_future_year_rejected(self):
        with pytest.raises(ValidationError):
            StudentEnrollRequest(**_payload(enrollment_year=datetime.now().year + 1))
