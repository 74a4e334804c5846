import uuid
import json
import logging
from typing import Optional

from fastapi import Request, status
from sqlalchemy.orm import Session

from cnote.common.common_message import CommonMessage
from cnote.common.constants import StatusCodes
from cnote.common.response_common import ResponseCommon
from cnote.models.task_job_model import TaskJob
from cnote.schemas.task_job import TaskJobResponse

logger = logging.getLogger(__name__)


class TaskJobService:
    """Service for managing async task jobs."""

    async def create_and_queue_job(
        self,
        request: Request,
        db: Session,
        task_type: str,
        task_function: str,
        user_id: int,
        note_id: Optional[int] = None,
        metadata: Optional[dict] = None,
        **kwargs,
    ) -> ResponseCommon:
        """Create a task job record and enqueue it to the ARQ worker."""
        if request is None or not hasattr(request.app.state, "arq_pool"):
            logger.error("Cannot queue %s: ARQ pool not initialized", task_type)
            return ResponseCommon.error_response(
                message=CommonMessage.QUEUE_NOT_INITIALIZED,
                code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        try:
            job_id = str(uuid.uuid4())
            new_job = TaskJob(
                id=job_id,
                task_type=task_type,
                status=StatusCodes.JOB_PENDING,
                user_id=user_id,
                note_id=note_id,
                metadata_json=metadata,
            )
            db.add(new_job)
            db.commit()
            db.refresh(new_job)
        except Exception as exc:
            db.rollback()
            logger.error("Failed to create %s job: %s", task_type, exc, exc_info=True)
            return ResponseCommon.error_response(
                message=f"Failed to create task job: {str(exc)}",
                code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        job_kwargs = dict(kwargs)
        job_kwargs["user_id"] = user_id
        if note_id is not None:
            job_kwargs["note_id"] = note_id

        try:
            await request.app.state.arq_pool.enqueue_job(
                task_function,
                job_id,
                **job_kwargs,
                _job_id=job_id,
            )
            new_job.status = StatusCodes.JOB_QUEUED
            db.commit()
        except Exception as exc:
            db.rollback()
            logger.error("Failed to enqueue job %s: %s", job_id, exc, exc_info=True)
            try:
                new_job.status = StatusCodes.JOB_FAILED
                new_job.error_message = str(exc)
                db.commit()
            except Exception:
                db.rollback()
                logger.exception("Failed to mark job %s as failed", job_id)
            return ResponseCommon.error_response(
                message=f"Failed to queue task job: {str(exc)}",
                code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        logger.info("Queued %s job %s (note_id=%s)", task_type, job_id, note_id)
        return ResponseCommon.success_response(
            data={
                "job_id": job_id,
                "task_type": task_type,
                "status": StatusCodes.JOB_QUEUED,
            },
            message=CommonMessage.JOB_QUEUED,
        )

    def get_job_status(self, db: Session, job_id: str, user_id: int) -> ResponseCommon:
        """Get job status by job_id."""
        job = (
            db.query(TaskJob)
            .filter(TaskJob.id == job_id, TaskJob.user_id == user_id)
            .first()
        )

        if not job:
            return ResponseCommon.error_response(
                message=CommonMessage.JOB_NOT_FOUND,
                code=status.HTTP_404_NOT_FOUND,
            )

        # Parse result from JSON string to dict if present
        result_data = None
        if job.result:
            try:
                result_data = json.loads(job.result)
            except (json.JSONDecodeError, TypeError):
                result_data = job.result

        job_data = TaskJobResponse.model_validate(job)
        job_data.result = result_data
        return ResponseCommon.success_response(
            data=job_data.model_dump(mode="json"),
            message=CommonMessage.JOB_STATUS_RETRIEVED,
        )


task_job_service = TaskJobService()
