"""
Access Grants Service Layer

Business logic for the company/student access workflow.

1. Request (company):
   - The student record must exist
   - A pending grant is inserted; the database allows only one pending
     grant per (company, student) pair, so a second request is rejected
     with DUPLICATE_PENDING_REQUEST even when both arrive at once
   - The student is notified by email

2. Decision (student):
   - pending -> approved | denied, stamping response_date
   - approved -> revoked, stamping revoked_date
   - Any other move is rejected with INVALID_GRANT_TRANSITION
   - The company is notified by email

3. Listings:
   - Company: its grants, ordered for display, with certificates attached
     to approved grants only
   - Student: grants on any of its student records, ordered for display

A student may only act on grants for its own student records. Grants for
anyone else are reported as not found.
"""

import logging
from collections import defaultdict
from datetime import UTC, datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from certvault.core.auth import PrincipalContext
from certvault.core.email import send_access_request_decision, send_access_request_received
from certvault.core.exceptions import ServiceError
from certvault.modules.access_grants import repository
from certvault.modules.access_grants.helpers import sort_grants, visible_student_ids
from certvault.modules.access_grants.models import AccessGrant, GrantStatus
from certvault.modules.access_grants.repository import InvalidStatusTransitionError
from certvault.modules.access_grants.schemas import CompanyGrantView, GrantStatusCounts
from certvault.modules.certificates import repository as certificate_repository
from certvault.modules.certificates.schemas import CertificateResponse
from certvault.modules.students import repository as student_repository
from certvault.modules.students.service import get_student

logger = logging.getLogger(__name__)

UNKNOWN_COMPANY_NAME = "Unknown Company"

RESPONSE_DECISIONS = frozenset({GrantStatus.APPROVED, GrantStatus.DENIED})


class GrantNotFoundError(ServiceError):
    """Raised when a grant does not exist or belongs to another student."""

    def __init__(self, grant_id: str | None = None):
        message = f"Access request {grant_id} not found" if grant_id else "Access request not found"
        super().__init__(
            message=message,
            error_code="GRANT_NOT_FOUND",
            status_code=404,
        )


class DuplicatePendingRequestError(ServiceError):
    """Raised when the company already has a pending request for the student."""

    def __init__(self):
        super().__init__(
            message="You already have a pending access request for this student.",
            error_code="DUPLICATE_PENDING_REQUEST",
            status_code=409,
        )


class InvalidGrantTransitionError(ServiceError):
    """Raised when a decision does not fit the grant's current status."""

    def __init__(self, current_status: GrantStatus, new_status: GrantStatus):
        self.current_status = current_status
        self.new_status = new_status
        super().__init__(
            message=(
                f"Cannot change an access request from '{current_status.value}' "
                f"to '{new_status.value}'."
            ),
            error_code="INVALID_GRANT_TRANSITION",
            status_code=409,
        )


async def _notify_decision(grant: AccessGrant) -> None:
    try:
        await send_access_request_decision(
            to_email=grant.company_email,
            company_name=grant.company_name,
            student_name=grant.student_name,
            decision=grant.status.value,
        )
    except Exception as e:
        logger.error(f"Exception sending decision notification for grant {grant.id}: {e}")


async def request_access(
    db: AsyncSession,
    company: PrincipalContext,
    student_id: str,
    message: str | None = None,
) -> AccessGrant:
    """
    Ask a student for access to their certificates.

    Args:
        db: Database session
        company: The requesting company
        student_id: Target student record
        message: Optional note shown to the student

    Returns:
        The new pending AccessGrant

    Raises:
        StudentNotFoundError: If the student does not exist
        DuplicatePendingRequestError: If a pending grant already exists for the pair
    """
    student = await get_student(db, student_id)

    try:
        grant = await repository.create(
            db,
            company_id=company.id,
            company_name=company.display_name or UNKNOWN_COMPANY_NAME,
            company_email=company.email,
            student=student,
            message=message,
        )
    except IntegrityError as e:
        logger.info(f"Duplicate pending request from company {company.id} for student {student.id}")
        raise DuplicatePendingRequestError() from e

    logger.info(f"Company {company.id} requested access to student {student.id} (grant {grant.id})")

    try:
        await send_access_request_received(
            to_email=student.email,
            student_name=student.name,
            company_name=grant.company_name,
            message=message,
        )
    except Exception as e:
        logger.error(f"Exception sending access request notification for grant {grant.id}: {e}")

    return grant


async def _get_owned_grant(
    db: AsyncSession,
    student: PrincipalContext,
    grant_id: str,
) -> AccessGrant:
    """
    Load a grant that concerns one of the student's records.

    Raises:
        GrantNotFoundError: If missing or concerning another student
    """
    grant = await repository.get_by_id(db, grant_id)
    if grant is None:
        raise GrantNotFoundError(grant_id)

    records = await student_repository.list_by_email(db, student.email)
    if grant.student_id not in {record.id for record in records}:
        logger.warning(f"{student} attempted to act on grant {grant_id} of another student")
        raise GrantNotFoundError(grant_id)

    return grant


async def _transition(
    db: AsyncSession,
    grant: AccessGrant,
    new_status: GrantStatus,
    **fields,
) -> AccessGrant:
    try:
        return await repository.update_status(db, grant.id, new_status, **fields)
    except InvalidStatusTransitionError as e:
        logger.warning(f"Rejected transition for grant {grant.id}: {e}")
        raise InvalidGrantTransitionError(e.current_status, e.new_status) from e
    except ValueError as e:
        raise GrantNotFoundError(grant.id) from e


async def respond_to_request(
    db: AsyncSession,
    student: PrincipalContext,
    grant_id: str,
    decision: GrantStatus,
) -> AccessGrant:
    """
    Approve or deny a pending request.

    Raises:
        GrantNotFoundError: If the grant is not the student's
        InvalidGrantTransitionError: If the grant is no longer pending, or
            ``decision`` is not approved/denied
    """
    grant = await _get_owned_grant(db, student, grant_id)

    if decision not in RESPONSE_DECISIONS:
        raise InvalidGrantTransitionError(grant.status, decision)

    grant = await _transition(db, grant, decision, response_date=datetime.now(UTC))
    logger.info(f"Student {student.id} {decision.value} grant {grant.id}")

    await _notify_decision(grant)
    return grant


async def revoke_access(
    db: AsyncSession,
    student: PrincipalContext,
    grant_id: str,
) -> AccessGrant:
    """
    Withdraw an approved grant.

    Certificates are untouched; the company simply stops seeing them.

    Raises:
        GrantNotFoundError: If the grant is not the student's
        InvalidGrantTransitionError: If the grant is not approved
    """
    grant = await _get_owned_grant(db, student, grant_id)
    grant = await _transition(db, grant, GrantStatus.REVOKED, revoked_date=datetime.now(UTC))
    logger.info(f"Student {student.id} revoked grant {grant.id}")

    await _notify_decision(grant)
    return grant


async def list_company_requests(
    db: AsyncSession,
    company: PrincipalContext,
) -> list[CompanyGrantView]:
    """The company's grants in display order, with certificates on approved ones."""
    grants = sort_grants(await repository.list_by_company(db, company.id))

    certificates_by_student: dict[str, list[CertificateResponse]] = defaultdict(list)
    visible = visible_student_ids(grants)
    if visible:
        for certificate in await certificate_repository.list_by_students(db, sorted(visible)):
            certificates_by_student[certificate.student_id].append(
                CertificateResponse.model_validate(certificate)
            )

    views = []
    for grant in grants:
        view = CompanyGrantView.model_validate(grant)
        if grant.status == GrantStatus.APPROVED:
            view.certificates = list(certificates_by_student.get(grant.student_id, []))
        views.append(view)
    return views


async def list_student_requests(
    db: AsyncSession,
    student: PrincipalContext,
) -> list[AccessGrant]:
    """Grants on any of the student's records, in display order."""
    records = await student_repository.list_by_email(db, student.email)
    grants = await repository.list_by_students(db, [record.id for record in records])
    return sort_grants(grants)


async def count_pending_requests(db: AsyncSession, student: PrincipalContext) -> int:
    """Number of requests waiting for the student's answer."""
    records = await student_repository.list_by_email(db, student.email)
    return await repository.count_pending_for_students(db, [record.id for record in records])


async def count_company_requests(db: AsyncSession, company: PrincipalContext) -> GrantStatusCounts:
    """Number of the company's grants in each status."""
    counts = await repository.count_by_status_for_company(db, company.id)
    return GrantStatusCounts(**{status.value: count for status, count in counts.items()})
