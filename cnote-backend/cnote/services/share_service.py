import logging

from fastapi import status
from sqlalchemy.orm import Session

from cnote.common.common_message import CommonMessage
from cnote.common.response_common import ResponseCommon
from cnote.models import Note, NoteShare, User
from cnote.schemas.share import NoteShare as NoteShareSchema

logger = logging.getLogger(__name__)


class ShareService:
    """Grants and revokes read access to notes."""

    def share_note(
        self,
        db: Session,
        owner_id: int,
        note_id: int,
        shared_with_username: str,
        permission: str = "read",
    ) -> ResponseCommon:
        note = db.query(Note).filter(Note.id == note_id, Note.user_id == owner_id).first()
        if not note:
            return ResponseCommon.error_response(
                message=CommonMessage.NOTE_NOT_FOUND,
                code=status.HTTP_404_NOT_FOUND,
            )

        target = db.query(User).filter(User.username == shared_with_username).first()
        if not target:
            return ResponseCommon.error_response(
                message=CommonMessage.SHARE_TARGET_NOT_FOUND,
                code=status.HTTP_404_NOT_FOUND,
            )
        if target.id == owner_id:
            return ResponseCommon.error_response(
                message=CommonMessage.SHARE_WITH_SELF,
                code=status.HTTP_400_BAD_REQUEST,
            )

        share = (
            db.query(NoteShare)
            .filter(NoteShare.note_id == note_id, NoteShare.shared_with_user_id == target.id)
            .first()
        )
        try:
            if share:
                share.permission = permission
                message = CommonMessage.SHARE_UPDATED_SUCCESS
                code = status.HTTP_200_OK
            else:
                share = NoteShare(
                    note_id=note_id,
                    owner_id=owner_id,
                    shared_with_user_id=target.id,
                    permission=permission,
                )
                db.add(share)
                message = CommonMessage.SHARE_CREATED_SUCCESS
                code = status.HTTP_201_CREATED
            note.is_shared = True
            db.commit()
            db.refresh(share)
        except Exception:
            db.rollback()
            raise

        logger.info("Note %s shared with user %s (%s)", note_id, target.id, permission)
        return ResponseCommon.success_response(
            data=NoteShareSchema.model_validate(share),
            message=message,
            code=code,
        )

    def revoke_share(self, db: Session, owner_id: int, share_id: int) -> ResponseCommon:
        share = (
            db.query(NoteShare)
            .filter(NoteShare.id == share_id, NoteShare.owner_id == owner_id)
            .first()
        )
        if not share:
            return ResponseCommon.error_response(
                message=CommonMessage.SHARE_NOT_FOUND,
                code=status.HTTP_404_NOT_FOUND,
            )

        note_id = share.note_id
        try:
            db.delete(share)
            db.flush()
            remaining = db.query(NoteShare).filter(NoteShare.note_id == note_id).count()
            if remaining == 0:
                db.query(Note).filter(Note.id == note_id).update({"is_shared": False})
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info("Share %s on note %s revoked", share_id, note_id)
        return ResponseCommon.success_response(
            data={"share_id": share_id, "note_id": note_id},
            message=CommonMessage.SHARE_DELETED_SUCCESS,
        )


share_service = ShareService()
