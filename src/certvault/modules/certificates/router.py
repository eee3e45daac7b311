"""
Certificates Router

Endpoints:
- POST /certificates - Issue a certificate to an enrolled student (school, multipart)
- GET /certificates/mine - Certificates of the signed-in student (student)
- GET /certificates/students/{student_id} - A student's certificates (company with approved access)
- GET /certificates/{id}/file - Download the stored file (issuer, owner or approved company)
- POST /certificates/{id}/verify - Re-hash the stored file and compare digests

Uploads are rate limited per school.
"""

import logging
from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from certvault.core.auth import PrincipalContext, get_current_principal, require_role
from certvault.core.config import settings
from certvault.core.database import get_db
from certvault.core.exceptions import ServiceError, raise_http_error
from certvault.core.rate_limit import enforce_rate_limit
from certvault.core.storage import ObjectStorage, get_storage
from certvault.modules.certificates import service
from certvault.modules.certificates.schemas import (
    CertificateIssueResponse,
    CertificateResponse,
    CertificateVerificationResponse,
    StudentCertificatesResponse,
)
from certvault.modules.principals.models import Role

logger = logging.getLogger(__name__)

router = APIRouter()

# Uploads per school per hour
UPLOAD_RATE_LIMIT = 100
UPLOAD_RATE_WINDOW_SECONDS = 3600


@router.post(
    "",
    response_model=CertificateIssueResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Issue Certificate",
    responses={
        400: {"description": "Empty file or unsupported file type"},
        404: {"description": "Student not found or not enrolled at this school"},
        413: {"description": "File too large"},
        429: {"description": "Too many uploads"},
        502: {"description": "File storage unavailable"},
    },
)
async def issue_certificate(
    student_id: UUID = Form(...),
    name: str = Form(..., min_length=1, max_length=200),
    issue_date: date = Form(...),
    file: UploadFile = File(...),
    school: PrincipalContext = Depends(require_role(Role.SCHOOL)),
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
) -> CertificateIssueResponse:
    """
    Issue a certificate to one of the school's students.

    The SHA-256 digest of the uploaded bytes is recorded with the
    certificate. Uploading the same file twice creates two certificates.
    """
    await enforce_rate_limit(
        "certificate_upload", school.id, UPLOAD_RATE_LIMIT, UPLOAD_RATE_WINDOW_SECONDS
    )

    # One byte past the limit is enough to reject an oversized upload
    data = await file.read(settings.max_certificate_size_bytes + 1)

    try:
        certificate = await service.issue_certificate(
            db,
            storage,
            school,
            student_id=str(student_id),
            name=name.strip(),
            issue_date=issue_date,
            file_name=file.filename or "",
            content_type=file.content_type,
            data=data,
        )
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error issuing certificate for school {school.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "INTERNAL_ERROR",
                "message": "Failed to issue certificate. Please try again later.",
            },
        ) from e

    return CertificateIssueResponse(
        certificate=CertificateResponse.model_validate(certificate),
        message="Certificate issued successfully.",
    )


@router.get(
    "/mine",
    response_model=list[CertificateResponse],
    summary="My Certificates",
)
async def list_my_certificates(
    student: PrincipalContext = Depends(require_role(Role.STUDENT)),
    db: AsyncSession = Depends(get_db),
) -> list[CertificateResponse]:
    """Certificates on every student record linked to the signed-in student."""
    certificates = await service.list_student_certificates(db, student)
    return [CertificateResponse.model_validate(c) for c in certificates]


@router.get(
    "/students/{student_id}",
    response_model=StudentCertificatesResponse,
    summary="Student Certificates",
    responses={403: {"description": "No approved access for this student"}},
)
async def list_student_certificates(
    student_id: UUID,
    company: PrincipalContext = Depends(require_role(Role.COMPANY)),
    db: AsyncSession = Depends(get_db),
) -> StudentCertificatesResponse:
    """A student's certificates, visible only with an approved access request."""
    try:
        certificates = await service.list_certificates_for_company(db, company, str(student_id))
    except ServiceError as e:
        raise_http_error(e)

    return StudentCertificatesResponse(
        student_id=str(student_id),
        certificates=[CertificateResponse.model_validate(c) for c in certificates],
    )


@router.get(
    "/{certificate_id}/file",
    summary="Download Certificate File",
    response_class=Response,
    responses={
        200: {"description": "The stored file", "content": {"application/octet-stream": {}}},
        404: {"description": "Certificate not found"},
        502: {"description": "File storage unavailable"},
    },
)
async def download_certificate(
    certificate_id: UUID,
    principal: PrincipalContext = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
) -> Response:
    """Return the exact bytes that were uploaded."""
    try:
        certificate, data = await service.get_certificate_file(
            db, storage, principal, str(certificate_id)
        )
    except ServiceError as e:
        raise_http_error(e)

    file_name = certificate.file_name.replace('"', "")
    return Response(
        content=data,
        media_type=certificate.file_type,
        headers={
            "Content-Disposition": f'attachment; filename="{file_name}"',
            "X-Content-SHA256": certificate.file_digest,
        },
    )


@router.post(
    "/{certificate_id}/verify",
    response_model=CertificateVerificationResponse,
    summary="Verify Certificate Integrity",
    responses={
        404: {"description": "Certificate not found"},
        502: {"description": "File storage unavailable"},
    },
)
async def verify_certificate(
    certificate_id: UUID,
    principal: PrincipalContext = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
) -> CertificateVerificationResponse:
    """
    Fetch the stored file, hash it again and compare with the recorded
    digest. ``matches`` is false if the stored copy was altered.
    """
    try:
        verification = await service.verify_certificate(
            db, storage, principal, str(certificate_id)
        )
    except ServiceError as e:
        raise_http_error(e)

    return CertificateVerificationResponse(
        certificate_id=verification.certificate_id,
        recorded_digest=verification.recorded_digest,
        computed_digest=verification.computed_digest,
        matches=verification.matches,
        verified_at=verification.verified_at,
    )
