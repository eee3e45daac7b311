"""
Access Grants Background Jobs

Reminds students of access requests they have not answered.

A pending request older than ``settings.pending_request_reminder_hours``
gets exactly one reminder email; ``reminder_sent_at`` is stamped after
processing so the job can run repeatedly without sending duplicates. The
job never changes a grant's status.

Individual failures are logged and do not stop the batch.
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from apscheduler.triggers.interval import IntervalTrigger

from certvault.core.config import settings
from certvault.core.database import async_session_maker
from certvault.core.email import send_pending_request_reminder
from certvault.core.scheduler import register_job
from certvault.modules.access_grants import repository
from certvault.modules.access_grants.models import AccessGrant

logger = logging.getLogger(__name__)

JOB_ID_SEND_PENDING_REMINDERS = "access_grants_send_pending_reminders"


async def _process_pending_reminder(grant: AccessGrant, hours_waiting: int) -> dict[str, Any]:
    async with async_session_maker() as db:
        email_sent = await send_pending_request_reminder(
            to_email=grant.student_email,
            student_name=grant.student_name,
            company_name=grant.company_name,
            hours_waiting=hours_waiting,
        )

        if not email_sent:
            # One reminder per grant, sent or not
            logger.error(f"Failed to send pending reminder for grant {grant.id}")

        await repository.mark_reminder_sent(db, grant.id)

    return {
        "grant_id": str(grant.id),
        "status": "sent" if email_sent else "marked_sent_email_failed",
    }


async def send_pending_request_reminders() -> dict[str, Any]:
    """
    Send one reminder for every pending request past the threshold.

    Returns:
        Dict with executed_at, reminders (per-grant results),
        total_processed and total_errors
    """
    executed_at = datetime.now(UTC)
    hours = settings.pending_request_reminder_hours
    threshold = executed_at - timedelta(hours=hours)

    logger.info(f"Starting pending reminder job. Threshold: {threshold.isoformat()}")

    results: dict[str, Any] = {
        "executed_at": executed_at.isoformat(),
        "reminders": [],
        "total_processed": 0,
        "total_errors": 0,
    }

    async with async_session_maker() as db:
        grants = await repository.get_pending_needing_reminder(db, requested_before=threshold)

    logger.info(f"Found {len(grants)} pending requests needing a reminder")

    for grant in grants:
        try:
            results["reminders"].append(await _process_pending_reminder(grant, hours))
            results["total_processed"] += 1
        except Exception as e:
            logger.error(f"Error sending reminder for grant {grant.id}: {e}", exc_info=True)
            results["reminders"].append(
                {"grant_id": str(grant.id), "status": "error", "error": str(e)}
            )
            results["total_errors"] += 1

    logger.info(
        f"Pending reminder job completed. "
        f"Processed: {results['total_processed']}, Errors: {results['total_errors']}"
    )
    return results


def register_access_grant_jobs() -> None:
    """Register the access grant jobs. Call before the scheduler starts."""
    register_job(
        job_id=JOB_ID_SEND_PENDING_REMINDERS,
        func=send_pending_request_reminders,
        trigger=IntervalTrigger(hours=1),
    )
    logger.info(f"Registered job: {JOB_ID_SEND_PENDING_REMINDERS} (interval: 1 hour)")
