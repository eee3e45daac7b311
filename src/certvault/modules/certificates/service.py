"""
Certificates Service Layer

Business logic for issuing and reading certificates.

Issuance:
1. The target student must belong to the issuing school
2. The upload is checked for emptiness, size and file extension
3. A SHA-256 digest is computed over the exact uploaded bytes
4. The bytes are stored under certificates/<school>/<student>/<uuid>.<ext>
5. A Certificate record with the key and digest is written

The digest is taken from the original bytes before upload and is never
re-derived on ordinary reads. ``verify_certificate`` is the only place the
stored copy is hashed again, and only when explicitly asked for.

Re-uploading the same bytes creates a second, independent certificate with
a new ID and storage key; digests are not used for deduplication.

Read access:
- School: certificates it issued
- Student: certificates on any of its student records
- Company: certificates of students for which it holds an approved grant
"""

import hashlib
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime
from pathlib import PurePath

from sqlalchemy.ext.asyncio import AsyncSession

from certvault.core.auth import PrincipalContext
from certvault.core.config import settings
from certvault.core.email import send_certificate_issued
from certvault.core.exceptions import ServiceError
from certvault.core.storage import ObjectNotFoundError, ObjectStorage, StorageError
from certvault.modules.access_grants import repository as grant_repository
from certvault.modules.certificates import repository
from certvault.modules.certificates.models import Certificate
from certvault.modules.principals.models import Role
from certvault.modules.students import repository as student_repository
from certvault.modules.students.service import get_owned_student

logger = logging.getLogger(__name__)

STORAGE_PREFIX = "certificates"
DEFAULT_CONTENT_TYPE = "application/octet-stream"


class CertificateNotFoundError(ServiceError):
    """Raised when a certificate does not exist or is not visible to the caller."""

    def __init__(self, certificate_id: str | None = None):
        message = (
            f"Certificate {certificate_id} not found" if certificate_id else "Certificate not found"
        )
        super().__init__(
            message=message,
            error_code="CERTIFICATE_NOT_FOUND",
            status_code=404,
        )


class InvalidCertificateFileError(ServiceError):
    """Raised when an uploaded file is empty or has a disallowed type."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="INVALID_CERTIFICATE_FILE",
            status_code=400,
        )


class CertificateTooLargeError(ServiceError):
    """Raised when an uploaded file exceeds the configured size limit."""

    def __init__(self, max_bytes: int):
        super().__init__(
            message=f"Certificate files may not exceed {max_bytes} bytes.",
            error_code="CERTIFICATE_TOO_LARGE",
            status_code=413,
        )


class AccessNotGrantedError(ServiceError):
    """Raised when a company has no approved grant for a student."""

    def __init__(self):
        super().__init__(
            message="You do not have approved access to this student's certificates.",
            error_code="ACCESS_NOT_GRANTED",
            status_code=403,
        )


class StorageUnavailableError(ServiceError):
    """Raised when the object store cannot be reached."""

    def __init__(self):
        super().__init__(
            message="File storage is temporarily unavailable. Please try again later.",
            error_code="STORAGE_UNAVAILABLE",
            status_code=502,
        )


@dataclass(frozen=True)
class CertificateVerification:
    """Outcome of re-hashing a stored certificate file."""

    certificate_id: str
    recorded_digest: str
    computed_digest: str
    verified_at: datetime

    @property
    def matches(self) -> bool:
        return self.recorded_digest == self.computed_digest


def compute_file_digest(data: bytes) -> str:
    """
    Compute the digest recorded for a certificate file.

    Returns:
        Hex-encoded SHA-256 of ``data`` (64 characters)
    """
    return hashlib.sha256(data).hexdigest()


def _file_extension(file_name: str) -> str:
    """Lower-case extension without the dot, or an empty string."""
    return PurePath(file_name).suffix.lower().lstrip(".")


def build_storage_key(school_id: str, student_id: str, file_name: str) -> str:
    """
    Build a fresh storage key for a certificate file.

    Every call yields a different key, even for the same inputs.
    """
    extension = _file_extension(file_name)
    suffix = f".{extension}" if extension else ""
    return f"{STORAGE_PREFIX}/{school_id}/{student_id}/{uuid.uuid4()}{suffix}"


def validate_certificate_file(file_name: str, data: bytes) -> None:
    """
    Check an upload before anything is stored.

    Raises:
        InvalidCertificateFileError: Empty file or extension not allowed
        CertificateTooLargeError: File larger than the configured limit
    """
    if not data:
        raise InvalidCertificateFileError("Certificate file is required.")

    if len(data) > settings.max_certificate_size_bytes:
        raise CertificateTooLargeError(settings.max_certificate_size_bytes)

    allowed = settings.allowed_extensions_list
    if _file_extension(file_name) not in allowed:
        raise InvalidCertificateFileError(
            f"Unsupported file type. Allowed: {', '.join(allowed)}"
        )


async def issue_certificate(
    db: AsyncSession,
    storage: ObjectStorage,
    school: PrincipalContext,
    *,
    student_id: str,
    name: str,
    issue_date: date,
    file_name: str,
    content_type: str | None,
    data: bytes,
) -> Certificate:
    """
    Issue a certificate to one of the school's students.

    Args:
        db: Database session
        storage: Object storage backend
        school: The issuing school
        student_id: Target student (must belong to the school)
        name: Human-readable certificate name
        issue_date: Date printed on the certificate
        file_name: Original file name of the upload
        content_type: MIME type reported by the client
        data: Exact uploaded bytes

    Returns:
        The created Certificate

    Raises:
        StudentNotFoundError: If the student is missing or belongs to another school
        InvalidCertificateFileError / CertificateTooLargeError: Bad upload
        StorageUnavailableError: If the bytes could not be stored (nothing is written)
    """
    student = await get_owned_student(db, school.id, student_id)
    validate_certificate_file(file_name, data)

    file_digest = compute_file_digest(data)
    file_type = content_type or DEFAULT_CONTENT_TYPE
    key = build_storage_key(school.id, student.id, file_name)

    try:
        await storage.put(key, data, content_type=file_type)
    except StorageError as e:
        logger.error(f"Failed to store certificate file for student {student.id}: {e}")
        raise StorageUnavailableError() from e

    certificate = await repository.create(
        db,
        school_id=school.id,
        student_id=student.id,
        name=name,
        issue_date=issue_date,
        upload_date=datetime.now(UTC),
        file_location=key,
        file_name=file_name,
        file_type=file_type,
        file_size=len(data),
        file_digest=file_digest,
    )
    logger.info(
        f"School {school.id} issued certificate {certificate.id} to student {student.id} "
        f"(digest {file_digest[:8]}...)"
    )

    # Notification failures never fail the issuance
    try:
        await send_certificate_issued(
            to_email=student.email,
            student_name=student.name,
            certificate_name=name,
            school_name=school.display_name or "Your school",
            file_digest=file_digest,
        )
    except Exception as e:
        logger.error(f"Exception sending certificate notification for {certificate.id}: {e}")

    return certificate


async def list_student_certificates(
    db: AsyncSession,
    student: PrincipalContext,
) -> list[Certificate]:
    """Certificates on every student record linked to the signed-in student."""
    records = await student_repository.list_by_email(db, student.email)
    return await repository.list_by_students(db, [record.id for record in records])


async def list_certificates_for_company(
    db: AsyncSession,
    company: PrincipalContext,
    student_id: str,
) -> list[Certificate]:
    """
    A student's certificates, if the company holds an approved grant.

    Raises:
        AccessNotGrantedError: If no approved grant exists for the pair
    """
    if not await grant_repository.has_approved_grant(db, company.id, student_id):
        logger.warning(f"Company {company.id} denied certificate read for student {student_id}")
        raise AccessNotGrantedError()

    return await repository.list_by_student(db, student_id)


async def _school_can_read(
    db: AsyncSession, principal: PrincipalContext, certificate: Certificate
) -> bool:
    return certificate.school_id == principal.id


async def _student_can_read(
    db: AsyncSession, principal: PrincipalContext, certificate: Certificate
) -> bool:
    records = await student_repository.list_by_email(db, principal.email)
    return certificate.student_id in {record.id for record in records}


async def _company_can_read(
    db: AsyncSession, principal: PrincipalContext, certificate: Certificate
) -> bool:
    return await grant_repository.has_approved_grant(db, principal.id, certificate.student_id)


_READ_CHECKS: dict[
    Role, Callable[[AsyncSession, PrincipalContext, Certificate], Awaitable[bool]]
] = {
    Role.SCHOOL: _school_can_read,
    Role.STUDENT: _student_can_read,
    Role.COMPANY: _company_can_read,
}


async def get_readable_certificate(
    db: AsyncSession,
    principal: PrincipalContext,
    certificate_id: str,
) -> Certificate:
    """
    Load a certificate the principal is allowed to read.

    Certificates the caller may not read are reported as not found.

    Raises:
        CertificateNotFoundError: Missing or not readable by the caller
    """
    certificate = await repository.get_by_id(db, certificate_id)
    if certificate is None:
        raise CertificateNotFoundError(certificate_id)

    if not await _READ_CHECKS[principal.role](db, principal, certificate):
        logger.warning(f"{principal} may not read certificate {certificate_id}")
        raise CertificateNotFoundError(certificate_id)

    return certificate


async def _fetch_bytes(storage: ObjectStorage, certificate: Certificate) -> bytes:
    try:
        return await storage.get(certificate.file_location)
    except ObjectNotFoundError as e:
        logger.error(f"Stored file missing for certificate {certificate.id}")
        raise CertificateNotFoundError(certificate.id) from e
    except StorageError as e:
        logger.error(f"Failed to fetch file for certificate {certificate.id}: {e}")
        raise StorageUnavailableError() from e


async def get_certificate_file(
    db: AsyncSession,
    storage: ObjectStorage,
    principal: PrincipalContext,
    certificate_id: str,
) -> tuple[Certificate, bytes]:
    """
    Fetch a certificate together with its stored bytes.

    Raises:
        CertificateNotFoundError: Missing, not readable, or file missing
        StorageUnavailableError: Storage backend failure
    """
    certificate = await get_readable_certificate(db, principal, certificate_id)
    data = await _fetch_bytes(storage, certificate)
    return certificate, data


async def verify_certificate(
    db: AsyncSession,
    storage: ObjectStorage,
    principal: PrincipalContext,
    certificate_id: str,
) -> CertificateVerification:
    """
    Re-hash the stored file and compare it with the recorded digest.

    Only runs when explicitly requested; reads never do this implicitly.
    """
    certificate, data = await get_certificate_file(db, storage, principal, certificate_id)
    verification = CertificateVerification(
        certificate_id=certificate.id,
        recorded_digest=certificate.file_digest,
        computed_digest=compute_file_digest(data),
        verified_at=datetime.now(UTC),
    )

    if not verification.matches:
        logger.warning(f"Digest mismatch for certificate {certificate.id}")

    return verification
