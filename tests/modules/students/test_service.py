"""
Unit tests for the students service layer.

These tests cover:
- Enrollment under the calling school
- Ownership checks for school-scoped lookups
- Company search (email first, then student ID)
- Certificate counts on the school list
"""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from certvault.modules.students.schemas import StudentEnrollRequest
from certvault.modules.students.service import (
    StudentNotFoundError,
    enroll_student,
    get_owned_student,
    get_records_for_student,
    list_school_students,
    search_students,
)

SERVICE = "certvault.modules.students.service"


class TestEnrollStudent:
    @pytest.mark.asyncio
    async def test_enroll_creates_record_for_school(self, mock_db, school, student_record):
        data = StudentEnrollRequest(
            name="Ada Lovelace",
            email="ada@example.com",
            student_id="S-1001",
            program="Mathematics",
            enrollment_year=2021,
        )
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.create = AsyncMock(return_value=student_record)

            result = await enroll_student(mock_db, school, data)

        assert result is student_record
        mock_repo.create.assert_awaited_once_with(mock_db, school.id, data)


class TestGetOwnedStudent:
    @pytest.mark.asyncio
    async def test_returns_own_student(self, mock_db, school, student_record):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=student_record)
            assert await get_owned_student(mock_db, school.id, student_record.id) is student_record

    @pytest.mark.asyncio
    async def test_other_schools_student_is_not_found(self, mock_db, student_record):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=student_record)

            with pytest.raises(StudentNotFoundError) as exc_info:
                await get_owned_student(mock_db, str(uuid4()), student_record.id)

        assert exc_info.value.status_code == 404
        assert exc_info.value.error_code == "STUDENT_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_missing_student(self, mock_db, school):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=None)

            with pytest.raises(StudentNotFoundError):
                await get_owned_student(mock_db, school.id, "missing")


class TestSearchStudents:
    @pytest.mark.asyncio
    async def test_email_match_skips_id_lookup(self, mock_db, student_record):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.list_by_email = AsyncMock(return_value=[student_record])
            mock_repo.list_by_external_id = AsyncMock()

            result = await search_students(mock_db, "ada@example.com")

        assert result == [student_record]
        mock_repo.list_by_external_id.assert_not_called()

    @pytest.mark.asyncio
    async def test_falls_back_to_student_id(self, mock_db, student_record):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.list_by_email = AsyncMock(return_value=[])
            mock_repo.list_by_external_id = AsyncMock(return_value=[student_record])

            result = await search_students(mock_db, " S-1001 ")

        assert result == [student_record]
        mock_repo.list_by_external_id.assert_awaited_once_with(mock_db, "S-1001")

    @pytest.mark.asyncio
    async def test_blank_query_returns_nothing(self, mock_db):
        with patch(f"{SERVICE}.repository") as mock_repo:
            assert await search_students(mock_db, "   ") == []
            mock_repo.list_by_email.assert_not_called()


class TestListSchoolStudents:
    @pytest.mark.asyncio
    async def test_counts_default_to_zero(self, mock_db, school, make_student_record):
        first = make_student_record(name="Ada Lovelace")
        second = make_student_record(name="Alan Turing", email="alan@example.com")

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.certificate_repository") as mock_certs,
        ):
            mock_repo.list_by_school = AsyncMock(return_value=[first, second])
            mock_certs.count_by_students = AsyncMock(return_value={first.id: 2})

            result = await list_school_students(mock_db, school)

        assert [(row.name, row.certificate_count) for row in result] == [
            ("Ada Lovelace", 2),
            ("Alan Turing", 0),
        ]


class TestGetRecordsForStudent:
    @pytest.mark.asyncio
    async def test_looks_up_by_principal_email(self, mock_db, student, student_record):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.list_by_email = AsyncMock(return_value=[student_record])

            result = await get_records_for_student(mock_db, student)

        assert result == [student_record]
        mock_repo.list_by_email.assert_awaited_once_with(mock_db, student.email)

    @pytest.mark.asyncio
    async def test_not_enrolled_yet(self, mock_db, student):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.list_by_email = AsyncMock(return_value=[])
            assert await get_records_for_student(mock_db, student) == []
