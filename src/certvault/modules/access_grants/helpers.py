"""
Access Grant Helpers

Display ordering and visibility shared by the company and student request
lists.
"""

from datetime import UTC, datetime

from certvault.modules.access_grants.models import AccessGrant, GrantStatus

# Lower sorts first; denied and revoked share the last tier
STATUS_PRIORITY: dict[GrantStatus, int] = {
    GrantStatus.PENDING: 0,
    GrantStatus.APPROVED: 1,
    GrantStatus.DENIED: 2,
    GrantStatus.REVOKED: 2,
}


def _timestamp(value: datetime) -> float:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.timestamp()


def sort_grants(grants: list[AccessGrant]) -> list[AccessGrant]:
    """
    Order grants for display.

    Pending first, then approved, then denied/revoked; within a tier the
    most recent request comes first.

    Args:
        grants: Grants in any order

    Returns:
        A new, sorted list
    """
    return sorted(
        grants,
        key=lambda grant: (STATUS_PRIORITY[grant.status], -_timestamp(grant.request_date)),
    )


def visible_student_ids(grants: list[AccessGrant]) -> set[str]:
    """Student IDs for which the given grants currently give visibility."""
    return {grant.student_id for grant in grants if grant.status == GrantStatus.APPROVED}
