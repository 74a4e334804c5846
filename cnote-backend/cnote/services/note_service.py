import logging

from fastapi import status
from sqlalchemy.orm import Session

from cnote.common.common_message import CommonMessage
from cnote.common.response_common import ResponseCommon
from cnote.models import Note
from cnote.schemas.note import Note as NoteSchema

logger = logging.getLogger(__name__)


def _get_own_note(db: Session, note_id: int, user_id: int):
    return db.query(Note).filter(
        Note.id == note_id,
        Note.user_id == user_id
    ).first()


def get_note_by_id(db: Session, note_id: int, user_id: int) -> ResponseCommon:
    """
    Get a single note by ID.

    Args:
        db: Database session
        note_id: Note ID
        user_id: User ID (for ownership verification)
    """
    note = _get_own_note(db, note_id, user_id)
    if not note:
        return ResponseCommon.error_response(
            message=CommonMessage.NOTE_NOT_FOUND,
            code=status.HTTP_404_NOT_FOUND
        )

    return ResponseCommon.success_response(
        data=NoteSchema.model_validate(note),
        message=CommonMessage.NOTE_RETRIEVED_SUCCESS
    )


def create_note(db: Session, user_id: int, note_data: dict) -> ResponseCommon:
    """
    Create a new note.

    Chunks are not written here; the caller queues a re-index job.
    """
    try:
        note = Note(user_id=user_id, **note_data)
        db.add(note)
        db.commit()
        db.refresh(note)
    except Exception:
        db.rollback()
        logger.error("Failed to create note for user %s", user_id, exc_info=True)
        raise

    logger.info("Created note %s for user %s", note.id, user_id)
    return ResponseCommon.success_response(
        code=status.HTTP_201_CREATED,
        data=NoteSchema.model_validate(note),
        message=CommonMessage.NOTE_CREATED_SUCCESS
    )


def update_note(db: Session, note_id: int, user_id: int, update_data: dict) -> ResponseCommon:
    """
    Update the provided fields of a note.

    Args:
        db: Database session
        note_id: Note ID
        user_id: User ID (for ownership verification)
        update_data: Dictionary containing fields to update
    """
    note = _get_own_note(db, note_id, user_id)
    if not note:
        return ResponseCommon.error_response(
            message=CommonMessage.NOTE_NOT_FOUND,
            code=status.HTTP_404_NOT_FOUND
        )

    try:
        for field, value in update_data.items():
            if value is not None and hasattr(note, field):
                setattr(note, field, value)
        db.commit()
        db.refresh(note)
    except Exception:
        db.rollback()
        logger.error("Failed to update note %s", note_id, exc_info=True)
        raise

    logger.info("Updated note %s", note_id)
    return ResponseCommon.success_response(
        data=NoteSchema.model_validate(note),
        message=CommonMessage.NOTE_UPDATED_SUCCESS
    )


def delete_note(db: Session, note_id: int, user_id: int) -> ResponseCommon:
    """Delete a note; its chunks and shares go with it."""
    note = _get_own_note(db, note_id, user_id)
    if not note:
        return ResponseCommon.error_response(
            message=CommonMessage.NOTE_NOT_FOUND,
            code=status.HTTP_404_NOT_FOUND
        )

    try:
        db.delete(note)
        db.commit()
    except Exception:
        db.rollback()
        logger.error("Failed to delete note %s", note_id, exc_info=True)
        raise

    logger.info("Deleted note %s", note_id)
    return ResponseCommon.success_response(
        data={"note_id": note_id},
        message=CommonMessage.NOTE_DELETED_SUCCESS
    )
