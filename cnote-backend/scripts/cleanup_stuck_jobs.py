import logging
import os
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from cnote.common.constants import StatusCodes
from cnote.db.session import SessionLocal
from cnote.models.task_job_model import TaskJob

logger = logging.getLogger(__name__)

STUCK_STATUSES = [StatusCodes.JOB_PROCESSING, StatusCodes.JOB_RETRYING]


def cleanup_stuck_jobs(db: Session, older_than: timedelta) -> int:
    """Mark jobs stuck in processing/retrying past ``older_than`` as failed."""
    # updated_at is stored naive
    cutoff = (datetime.now(timezone.utc) - older_than).replace(tzinfo=None)

    stuck_jobs = (
        db.query(TaskJob)
        .filter(TaskJob.status.in_(STUCK_STATUSES), TaskJob.updated_at < cutoff)
        .all()
    )

    for job in stuck_jobs:
        job.status = StatusCodes.JOB_FAILED
        job.error_message = "Job timeout - exceeded maximum processing time"

    db.commit()
    return len(stuck_jobs)


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    minutes = int(os.getenv("STUCK_JOB_TIMEOUT_MINUTES", "30"))
    db = SessionLocal()
    try:
        count = cleanup_stuck_jobs(db, timedelta(minutes=minutes))
        logger.info("Cleaned up %d stuck jobs", count)
    finally:
        db.close()


if __name__ == "__main__":
    main()
