"""
Access Grant Repository

Database operations for access grants, including the status state machine.

State machine:
    (new) -> pending
    pending -> approved | denied
    approved -> revoked
    denied, revoked: terminal
"""

from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from certvault.modules.students.models import StudentRecord

from .models import AccessGrant, GrantStatus

# Valid status transitions; anything not listed is rejected
VALID_STATUS_TRANSITIONS: dict[GrantStatus, set[GrantStatus]] = {
    GrantStatus.PENDING: {
        GrantStatus.APPROVED,  # Student grants access
        GrantStatus.DENIED,  # Student refuses access
    },
    GrantStatus.APPROVED: {
        GrantStatus.REVOKED,  # Student withdraws access
    },
    # Terminal states - no transitions allowed
    GrantStatus.DENIED: set(),
    GrantStatus.REVOKED: set(),
}


class InvalidStatusTransitionError(ValueError):
    """Raised when an invalid status transition is attempted."""

    def __init__(self, current_status: GrantStatus, new_status: GrantStatus):
        self.current_status = current_status
        self.new_status = new_status
        valid_transitions = VALID_STATUS_TRANSITIONS.get(current_status, set())
        super().__init__(
            f"Invalid status transition: {current_status.value} -> {new_status.value}. "
            f"Valid transitions: {sorted(s.value for s in valid_transitions)}"
        )


def is_valid_transition(current_status: GrantStatus, new_status: GrantStatus) -> bool:
    """Check a transition against the state machine."""
    return new_status in VALID_STATUS_TRANSITIONS.get(current_status, set())


async def create(
    db: AsyncSession,
    *,
    company_id: str,
    company_name: str,
    company_email: str,
    student: StudentRecord,
    message: str | None,
) -> AccessGrant:
    """
    Create a pending access grant.

    Raises:
        IntegrityError: If a pending grant already exists for the pair
            (partial unique index); the session is rolled back first
    """
    grant = AccessGrant(
        company_id=company_id,
        company_name=company_name,
        company_email=company_email,
        student_id=student.id,
        student_name=student.name,
        student_email=student.email,
        message=message,
        status=GrantStatus.PENDING,
        request_date=datetime.now(UTC),
    )

    db.add(grant)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise
    await db.refresh(grant)

    return grant


async def get_by_id(db: AsyncSession, id: str) -> AccessGrant | None:
    """Get access grant by ID."""
    return await db.get(AccessGrant, id)


async def list_by_company(db: AsyncSession, company_id: str) -> list[AccessGrant]:
    """All grants requested by a company."""
    result = await db.execute(select(AccessGrant).where(AccessGrant.company_id == company_id))
    return list(result.scalars().all())


async def list_by_students(db: AsyncSession, student_ids: list[str]) -> list[AccessGrant]:
    """All grants concerning any of the given student records."""
    if not student_ids:
        return []

    result = await db.execute(select(AccessGrant).where(AccessGrant.student_id.in_(student_ids)))
    return list(result.scalars().all())


async def has_approved_grant(db: AsyncSession, company_id: str, student_id: str) -> bool:
    """True if the company currently holds an approved grant for the student."""
    result = await db.execute(
        select(AccessGrant.id)
        .where(
            AccessGrant.company_id == company_id,
            AccessGrant.student_id == student_id,
            AccessGrant.status == GrantStatus.APPROVED,
        )
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def count_pending_for_students(db: AsyncSession, student_ids: list[str]) -> int:
    """Number of pending grants awaiting an answer from the given student records."""
    if not student_ids:
        return 0

    result = await db.execute(
        select(func.count(AccessGrant.id)).where(
            AccessGrant.student_id.in_(student_ids),
            AccessGrant.status == GrantStatus.PENDING,
        )
    )
    return result.scalar_one()


async def count_by_status_for_company(db: AsyncSession, company_id: str) -> dict[GrantStatus, int]:
    """Number of the company's grants in each status (zero-filled)."""
    result = await db.execute(
        select(AccessGrant.status, func.count(AccessGrant.id))
        .where(AccessGrant.company_id == company_id)
        .group_by(AccessGrant.status)
    )
    counts = {grant_status: 0 for grant_status in GrantStatus}
    for grant_status, count in result.all():
        counts[grant_status] = count
    return counts


async def update_status(
    db: AsyncSession,
    id: str,
    status: GrantStatus,
    **kwargs,
) -> AccessGrant:
    """
    Move a grant to a new status and set the accompanying timestamp fields.

    Args:
        db: Database session
        id: Grant ID
        status: New status
        **kwargs: Additional fields to update (e.g., response_date)

    Returns:
        Updated AccessGrant

    Raises:
        ValueError: If the grant is not found
        InvalidStatusTransitionError: If the transition is not allowed
    """
    grant = await get_by_id(db, id)
    if not grant:
        raise ValueError(f"Access grant {id} not found")

    if not is_valid_transition(grant.status, status):
        raise InvalidStatusTransitionError(grant.status, status)

    grant.status = status

    for key, value in kwargs.items():
        if hasattr(grant, key):
            setattr(grant, key, value)

    await db.commit()
    await db.refresh(grant)

    return grant


async def get_pending_needing_reminder(
    db: AsyncSession,
    requested_before: datetime,
) -> list[AccessGrant]:
    """Pending grants requested before the cutoff that have not been reminded yet."""
    result = await db.execute(
        select(AccessGrant).where(
            AccessGrant.status == GrantStatus.PENDING,
            AccessGrant.request_date < requested_before,
            AccessGrant.reminder_sent_at.is_(None),
        )
    )
    return list(result.scalars().all())


async def mark_reminder_sent(db: AsyncSession, id: str) -> None:
    """Stamp the reminder time on a grant. Status is left untouched."""
    grant = await get_by_id(db, id)
    if grant is None:
        return

    grant.reminder_sent_at = datetime.now(UTC)
    await db.commit()
