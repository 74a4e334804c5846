from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from cnote.api.deps import get_db, get_current_active_user
from cnote.models import User
from cnote.services.task_job_service import task_job_service

router = APIRouter()


@router.get("/status/{job_id}")
async def get_task_status(
    job_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """
    Get the status of an async task job.

    Re-index jobs move through queued, processing, retrying, and finally
    completed or failed; failures carry the last error message.
    """
    result = task_job_service.get_job_status(
        db=db,
        job_id=job_id,
        user_id=current_user.id,
    )
    return result.to_response()
