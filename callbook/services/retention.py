"""Reminder job retention: delete jobs fired or cancelled more than JOB_RETENTION_HOURS ago."""

import logging
from datetime import datetime, timezone, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import func
from sqlalchemy.orm import Session

from callbook.models import ReminderJob
from callbook.models.reminder_job import JOB_CANCELLED, JOB_FIRED

if TYPE_CHECKING:
    from callbook.core.config import Settings

logger = logging.getLogger(__name__)


def run_job_retention(session: Session, settings: "Settings") -> int:
    """
    Delete reminder jobs that reached fired/cancelled before the retention cutoff.

    Pending jobs are never touched. Returns the number of rows deleted.
    Idempotent: safe to run repeatedly.
    """
    if not settings.JOB_RETENTION_ENABLED:
        logger.info("Job retention is disabled (JOB_RETENTION_ENABLED=false); skipping.")
        return 0

    cutoff = datetime.now(timezone.utc) - timedelta(hours=settings.JOB_RETENTION_HOURS)
    deleted_count = (
        session.query(ReminderJob)
        .filter(
            ReminderJob.state.in_((JOB_FIRED, JOB_CANCELLED)),
            # Age counts from the terminal transition, not from scheduling.
            func.coalesce(
                ReminderJob.fired_at, ReminderJob.cancelled_at, ReminderJob.created_at
            )
            < cutoff,
        )
        .delete(synchronize_session=False)
    )
    session.commit()

    if deleted_count > 0:
        logger.info(
            "Job retention run: cutoff=%s, jobs_deleted=%s",
            cutoff.isoformat(),
            deleted_count,
        )
    return deleted_count
