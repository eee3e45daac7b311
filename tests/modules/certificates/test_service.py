"""
Unit tests for the certificates service layer.

These tests cover:
- Digest computation and storage key generation
- Upload validation (empty, size, extension)
- Issuance: digest from original bytes, storage write, no dedup
- Storage failures leave nothing written
- Read access per role and explicit integrity verification
"""

import hashlib
from datetime import date
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from certvault.core.storage import ObjectNotFoundError, StorageError
from certvault.modules.certificates.models import Certificate
from certvault.modules.certificates.service import (
    AccessNotGrantedError,
    CertificateNotFoundError,
    CertificateTooLargeError,
    InvalidCertificateFileError,
    StorageUnavailableError,
    build_storage_key,
    compute_file_digest,
    get_certificate_file,
    get_readable_certificate,
    issue_certificate,
    list_certificates_for_company,
    list_student_certificates,
    validate_certificate_file,
    verify_certificate,
)
from certvault.modules.principals.models import Role
from certvault.modules.students.service import StudentNotFoundError

SERVICE = "certvault.modules.certificates.service"

PDF_BYTES = b"%PDF-1.7\n1 0 obj\n<<>>\nendobj\n%%EOF"


class InMemoryStorage:
    """Storage double keeping objects in a dict."""

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.content_types: dict[str, str | None] = {}

    async def put(self, key, data, content_type=None):
        self.objects[key] = data
        self.content_types[key] = content_type

    async def get(self, key):
        if key not in self.objects:
            raise ObjectNotFoundError(key)
        return self.objects[key]

    async def exists(self, key):
        return key in self.objects


class FailingStorage(InMemoryStorage):
    async def put(self, key, data, content_type=None):
        raise StorageError("bucket unreachable")


def _create_from_kwargs(db, **fields):
    return Certificate(id=str(uuid4()), **fields)


@pytest.fixture
def storage():
    return InMemoryStorage()


class TestComputeFileDigest:
    def test_is_sha256_hex(self):
        assert compute_file_digest(PDF_BYTES) == hashlib.sha256(PDF_BYTES).hexdigest()
        assert len(compute_file_digest(PDF_BYTES)) == 64

    def test_differs_for_one_changed_byte(self):
        assert compute_file_digest(b"abc") != compute_file_digest(b"abd")


class TestBuildStorageKey:
    def test_key_layout(self):
        key = build_storage_key("school-1", "student-1", "Diploma.PDF")
        prefix, school_id, student_id, name = key.split("/")
        assert (prefix, school_id, student_id) == ("certificates", "school-1", "student-1")
        assert name.endswith(".pdf")

    def test_fresh_key_every_call(self):
        assert build_storage_key("s", "t", "a.pdf") != build_storage_key("s", "t", "a.pdf")

    def test_no_extension(self):
        key = build_storage_key("s", "t", "README")
        assert "." not in key.rsplit("/", 1)[1]


class TestValidateCertificateFile:
    def test_accepts_pdf(self):
        validate_certificate_file("diploma.pdf", PDF_BYTES)

    def test_accepts_uppercase_image_extension(self):
        validate_certificate_file("scan.JPG", b"\xff\xd8\xff")

    def test_rejects_empty(self):
        with pytest.raises(InvalidCertificateFileError):
            validate_certificate_file("diploma.pdf", b"")

    def test_rejects_extension(self):
        with pytest.raises(InvalidCertificateFileError) as exc_info:
            validate_certificate_file("payload.exe", b"MZ")
        assert "Allowed" in exc_info.value.message

    def test_rejects_too_large(self):
        from certvault.core.config import settings

        with pytest.raises(CertificateTooLargeError) as exc_info:
            validate_certificate_file("big.pdf", b"0" * (settings.max_certificate_size_bytes + 1))
        assert exc_info.value.status_code == 413


class TestIssueCertificate:
    @pytest.mark.asyncio
    async def test_issue_records_digest_and_stores_bytes(
        self, mock_db, storage, school, student_record
    ):
        with (
            patch(f"{SERVICE}.get_owned_student", AsyncMock(return_value=student_record)),
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.send_certificate_issued", AsyncMock(return_value=True)) as mock_email,
        ):
            mock_repo.create = AsyncMock(side_effect=_create_from_kwargs)

            certificate = await issue_certificate(
                mock_db,
                storage,
                school,
                student_id=student_record.id,
                name="BSc Mathematics",
                issue_date=date(2024, 6, 30),
                file_name="diploma.pdf",
                content_type="application/pdf",
                data=PDF_BYTES,
            )

        assert certificate.file_digest == hashlib.sha256(PDF_BYTES).hexdigest()
        assert certificate.file_size == len(PDF_BYTES)
        assert certificate.school_id == school.id
        assert certificate.student_id == student_record.id
        assert storage.objects[certificate.file_location] == PDF_BYTES
        assert storage.content_types[certificate.file_location] == "application/pdf"
        mock_email.assert_awaited_once()
        assert mock_email.await_args.kwargs["file_digest"] == certificate.file_digest

    @pytest.mark.asyncio
    async def test_reupload_creates_second_certificate(
        self, mock_db, storage, school, student_record
    ):
        with (
            patch(f"{SERVICE}.get_owned_student", AsyncMock(return_value=student_record)),
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.send_certificate_issued", AsyncMock(return_value=True)),
        ):
            mock_repo.create = AsyncMock(side_effect=_create_from_kwargs)

            issued = [
                await issue_certificate(
                    mock_db,
                    storage,
                    school,
                    student_id=student_record.id,
                    name="BSc Mathematics",
                    issue_date=date(2024, 6, 30),
                    file_name="diploma.pdf",
                    content_type="application/pdf",
                    data=PDF_BYTES,
                )
                for _ in range(2)
            ]

        first, second = issued
        assert first.id != second.id
        assert first.file_location != second.file_location
        assert first.file_digest == second.file_digest
        assert len(storage.objects) == 2

    @pytest.mark.asyncio
    async def test_missing_content_type_defaults(self, mock_db, storage, school, student_record):
        with (
            patch(f"{SERVICE}.get_owned_student", AsyncMock(return_value=student_record)),
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.send_certificate_issued", AsyncMock(return_value=True)),
        ):
            mock_repo.create = AsyncMock(side_effect=_create_from_kwargs)

            certificate = await issue_certificate(
                mock_db,
                storage,
                school,
                student_id=student_record.id,
                name="Transcript",
                issue_date=date(2024, 6, 30),
                file_name="transcript.png",
                content_type=None,
                data=b"\x89PNG",
            )

        assert certificate.file_type == "application/octet-stream"

    @pytest.mark.asyncio
    async def test_storage_failure_writes_nothing(self, mock_db, school, student_record):
        with (
            patch(f"{SERVICE}.get_owned_student", AsyncMock(return_value=student_record)),
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_repo.create = AsyncMock()

            with pytest.raises(StorageUnavailableError) as exc_info:
                await issue_certificate(
                    mock_db,
                    FailingStorage(),
                    school,
                    student_id=student_record.id,
                    name="BSc Mathematics",
                    issue_date=date(2024, 6, 30),
                    file_name="diploma.pdf",
                    content_type="application/pdf",
                    data=PDF_BYTES,
                )

        assert exc_info.value.status_code == 502
        mock_repo.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_foreign_student_is_rejected_before_upload(self, mock_db, storage, school):
        with (
            patch(
                f"{SERVICE}.get_owned_student",
                AsyncMock(side_effect=StudentNotFoundError("other")),
            ),
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            with pytest.raises(StudentNotFoundError):
                await issue_certificate(
                    mock_db,
                    storage,
                    school,
                    student_id="other",
                    name="BSc Mathematics",
                    issue_date=date(2024, 6, 30),
                    file_name="diploma.pdf",
                    content_type="application/pdf",
                    data=PDF_BYTES,
                )

        assert storage.objects == {}
        mock_repo.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_email_failure_does_not_fail_issue(
        self, mock_db, storage, school, student_record
    ):
        with (
            patch(f"{SERVICE}.get_owned_student", AsyncMock(return_value=student_record)),
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(
                f"{SERVICE}.send_certificate_issued",
                AsyncMock(side_effect=RuntimeError("smtp down")),
            ),
        ):
            mock_repo.create = AsyncMock(side_effect=_create_from_kwargs)

            certificate = await issue_certificate(
                mock_db,
                storage,
                school,
                student_id=student_record.id,
                name="BSc Mathematics",
                issue_date=date(2024, 6, 30),
                file_name="diploma.pdf",
                content_type="application/pdf",
                data=PDF_BYTES,
            )

        assert certificate.id


class TestCompanyVisibility:
    @pytest.mark.asyncio
    async def test_approved_grant_lists_certificates(
        self, mock_db, company, student_record, make_certificate
    ):
        certificates = [make_certificate(), make_certificate(name="Transcript")]
        with (
            patch(f"{SERVICE}.grant_repository") as mock_grants,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_grants.has_approved_grant = AsyncMock(return_value=True)
            mock_repo.list_by_student = AsyncMock(return_value=certificates)

            result = await list_certificates_for_company(mock_db, company, student_record.id)

        assert result == certificates
        mock_grants.has_approved_grant.assert_awaited_once_with(
            mock_db, company.id, student_record.id
        )

    @pytest.mark.asyncio
    async def test_without_approved_grant_is_forbidden(self, mock_db, company, student_record):
        with (
            patch(f"{SERVICE}.grant_repository") as mock_grants,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_grants.has_approved_grant = AsyncMock(return_value=False)
            mock_repo.list_by_student = AsyncMock()

            with pytest.raises(AccessNotGrantedError) as exc_info:
                await list_certificates_for_company(mock_db, company, student_record.id)

        assert exc_info.value.status_code == 403
        mock_repo.list_by_student.assert_not_called()


class TestStudentCertificates:
    @pytest.mark.asyncio
    async def test_collects_all_linked_records(
        self, mock_db, student, make_student_record, make_certificate
    ):
        first = make_student_record()
        second = make_student_record(external_student_id="S-2002")
        certificates = [make_certificate()]

        with (
            patch(f"{SERVICE}.student_repository") as mock_students,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_students.list_by_email = AsyncMock(return_value=[first, second])
            mock_repo.list_by_students = AsyncMock(return_value=certificates)

            result = await list_student_certificates(mock_db, student)

        assert result == certificates
        mock_repo.list_by_students.assert_awaited_once_with(mock_db, [first.id, second.id])


class TestReadAccess:
    @pytest.mark.asyncio
    async def test_issuing_school_can_read(self, mock_db, school, make_certificate):
        certificate = make_certificate()
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=certificate)
            assert await get_readable_certificate(mock_db, school, certificate.id) is certificate

    @pytest.mark.asyncio
    async def test_other_school_gets_not_found(self, mock_db, school, make_certificate):
        certificate = make_certificate(school_id=str(uuid4()))
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=certificate)

            with pytest.raises(CertificateNotFoundError):
                await get_readable_certificate(mock_db, school, certificate.id)

    @pytest.mark.asyncio
    async def test_owning_student_can_read(
        self, mock_db, student, student_record, make_certificate
    ):
        certificate = make_certificate()
        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.student_repository") as mock_students,
        ):
            mock_repo.get_by_id = AsyncMock(return_value=certificate)
            mock_students.list_by_email = AsyncMock(return_value=[student_record])

            assert await get_readable_certificate(mock_db, student, certificate.id) is certificate

    @pytest.mark.asyncio
    async def test_company_needs_approved_grant(self, mock_db, company, make_certificate):
        certificate = make_certificate()
        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.grant_repository") as mock_grants,
        ):
            mock_repo.get_by_id = AsyncMock(return_value=certificate)
            mock_grants.has_approved_grant = AsyncMock(return_value=False)

            with pytest.raises(CertificateNotFoundError):
                await get_readable_certificate(mock_db, company, certificate.id)

    @pytest.mark.asyncio
    async def test_missing_certificate(self, mock_db, school):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=None)

            with pytest.raises(CertificateNotFoundError) as exc_info:
                await get_readable_certificate(mock_db, school, "missing")

        assert exc_info.value.status_code == 404

    def test_every_role_has_a_read_check(self):
        from certvault.modules.certificates.service import _READ_CHECKS

        assert set(_READ_CHECKS) == set(Role)


class TestFileAndVerification:
    @pytest.mark.asyncio
    async def test_file_bytes_returned(self, mock_db, storage, school, make_certificate):
        certificate = make_certificate()
        storage.objects[certificate.file_location] = PDF_BYTES

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=certificate)

            found, data = await get_certificate_file(mock_db, storage, school, certificate.id)

        assert found is certificate
        assert data == PDF_BYTES

    @pytest.mark.asyncio
    async def test_missing_stored_file_is_not_found(
        self, mock_db, storage, school, make_certificate
    ):
        certificate = make_certificate()
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=certificate)

            with pytest.raises(CertificateNotFoundError):
                await get_certificate_file(mock_db, storage, school, certificate.id)

    @pytest.mark.asyncio
    async def test_verify_matches_recorded_digest(
        self, mock_db, storage, school, make_certificate
    ):
        certificate = make_certificate(file_digest=compute_file_digest(PDF_BYTES))
        storage.objects[certificate.file_location] = PDF_BYTES

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=certificate)

            verification = await verify_certificate(mock_db, storage, school, certificate.id)

        assert verification.matches is True
        assert verification.computed_digest == certificate.file_digest

    @pytest.mark.asyncio
    async def test_verify_detects_tampering(self, mock_db, storage, school, make_certificate):
        certificate = make_certificate(file_digest=compute_file_digest(PDF_BYTES))
        storage.objects[certificate.file_location] = PDF_BYTES + b" "

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=certificate)

            verification = await verify_certificate(mock_db, storage, school, certificate.id)

        assert verification.matches is False
        assert verification.recorded_digest == compute_file_digest(PDF_BYTES)
