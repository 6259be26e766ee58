"""
CLI entrypoint for the reminder job retention run. Run from cron, e.g.:

  python -m callbook.retention

Or daily: 0 3 * * * cd /path/to/callbook && .venv/bin/python -m callbook.retention
"""

import logging
import sys

from sqlalchemy.exc import SQLAlchemyError

from callbook.core.config import get_settings
from callbook.core.database import SessionLocal
from callbook.services.retention import run_job_retention

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Delete fired/cancelled reminder jobs older than JOB_RETENTION_HOURS."""
    settings = get_settings()
    db = SessionLocal()
    try:
        jobs_deleted = run_job_retention(db, settings)
        logger.info("Job retention completed: jobs_deleted=%s", jobs_deleted)
        return 0
    except SQLAlchemyError as e:
        logger.exception("Job retention failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
