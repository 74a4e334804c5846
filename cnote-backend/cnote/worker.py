import json
import logging

from arq import Retry
from sqlalchemy.orm import Session

from cnote.common.constants import StatusCodes
from cnote.config import settings
from cnote.core.redis_config import REDIS_SETTINGS
from cnote.db.session import SessionLocal
from cnote.models import Note
from cnote.models.task_job_model import TaskJob
from cnote.services.indexing_service import reindex_note

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("arq.worker")


async def handle_reindex_note(
    ctx,
    job_id: str,
    note_id: int,
    user_id: int,
):
    """
    Background task that regenerates the chunk set of a note.

    Failed attempts are retried with a growing delay; the last failure is
    recorded on the job row and never reaches the note writer.
    """
    db: Session = SessionLocal()
    job_record = None
    attempt = ctx.get("job_try", 1)
    max_tries = ctx.get("max_tries", settings.REINDEX_MAX_TRIES)
    try:
        logger.info("Starting re-index for job %s (note %s, attempt %d)", job_id, note_id, attempt)

        job_record = db.query(TaskJob).filter(TaskJob.id == job_id).first()
        if not job_record:
            logger.error("Job %s not found in database", job_id)
            return

        job_record.status = StatusCodes.JOB_PROCESSING
        job_record.attempts = attempt
        db.commit()

        note = db.query(Note).filter(Note.id == note_id, Note.user_id == user_id).first()
        if not note:
            job_record.status = StatusCodes.JOB_COMPLETED
            job_record.result = json.dumps({"note_id": note_id, "skipped": True, "reason": "note not found"})
            db.commit()
            logger.info("Note %s no longer exists, job %s skipped", note_id, job_id)
            return

        chunk_count = await reindex_note(db, note, ctx.get("embedding_service"))

        job_record.status = StatusCodes.JOB_COMPLETED
        job_record.error_message = None
        job_record.result = json.dumps({"note_id": note_id, "chunks": chunk_count})
        db.commit()

        logger.info("Completed re-index for job %s: %d chunks", job_id, chunk_count)
    except Exception as exc:
        db.rollback()
        if job_record is None:
            raise
        job_record.error_message = str(exc)
        if attempt < max_tries:
            job_record.status = StatusCodes.JOB_RETRYING
            db.commit()
            defer = settings.REINDEX_RETRY_DELAY_SECONDS * attempt
            logger.warning(
                "Re-index job %s failed (attempt %d/%d): %s. Retrying in %ds",
                job_id, attempt, max_tries, exc, defer,
            )
            raise Retry(defer=defer)
        job_record.status = StatusCodes.JOB_FAILED
        db.commit()
        logger.error("Re-index job %s failed after %d attempts: %s", job_id, attempt, exc)
    finally:
        db.close()


class WorkerSettings:
    """ARQ Worker configuration."""

    functions = [
        handle_reindex_note,
    ]
    redis_settings = REDIS_SETTINGS
    max_jobs = 10
    max_tries = settings.REINDEX_MAX_TRIES
    job_timeout = 600
    keep_result = 3600
