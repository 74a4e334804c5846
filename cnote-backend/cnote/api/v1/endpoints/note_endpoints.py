import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from cnote.api.deps import get_db, get_current_active_user
from cnote.common.constants import TaskTypes
from cnote.common.response_common import ResponseCommon
from cnote.models import User
from cnote.schemas.note import NoteCreate, NoteUpdate, NoteWriteResponse
from cnote.services.note_service import (
    get_note_by_id,
    create_note,
    update_note,
    delete_note,
)
from cnote.services.task_job_service import task_job_service

logger = logging.getLogger(__name__)

router = APIRouter()


async def _queue_reindex(request: Request, db: Session, user_id: int, note_id: int) -> Optional[str]:
    """Queue a re-index job; a queueing failure never fails the note write."""
    queued = await task_job_service.create_and_queue_job(
        request=request,
        db=db,
        task_type=TaskTypes.REINDEX_NOTE,
        task_function="handle_reindex_note",
        user_id=user_id,
        note_id=note_id,
    )
    if not queued.success:
        logger.warning("Re-index for note %s not queued: %s", note_id, queued.message)
        return None
    return queued.data["job_id"]


def _write_response(result: ResponseCommon, job_id: Optional[str]) -> ResponseCommon:
    result.data = NoteWriteResponse(note=result.data, reindex_job_id=job_id)
    return result


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_new_note(
    request: Request,
    note: NoteCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """
    Create a new note and queue its re-index job.

    The response does not wait for indexing; poll
    `/tasks/status/{reindex_job_id}` to follow it.
    """
    result = create_note(db=db, user_id=current_user.id, note_data=note.model_dump())
    job_id = await _queue_reindex(request, db, current_user.id, result.data.id)
    return _write_response(result, job_id).to_response()


@router.get("/{note_id}")
async def get_note(
    note_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return get_note_by_id(db=db, note_id=note_id, user_id=current_user.id).to_response()


@router.put("/{note_id}")
async def update_existing_note(
    request: Request,
    note_id: int,
    note_update: NoteUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Update title and/or content, then queue a re-index job."""
    result = update_note(
        db=db,
        note_id=note_id,
        user_id=current_user.id,
        update_data=note_update.model_dump(exclude_unset=True),
    )
    if not result.success:
        return result.to_response()

    job_id = await _queue_reindex(request, db, current_user.id, note_id)
    return _write_response(result, job_id).to_response()


@router.delete("/{note_id}")
async def delete_existing_note(
    note_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return delete_note(db=db, note_id=note_id, user_id=current_user.id).to_response()
