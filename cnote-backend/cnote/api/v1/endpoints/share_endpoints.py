from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from cnote.api.deps import get_db, get_current_active_user
from cnote.models import User
from cnote.schemas.share import NoteShareCreate
from cnote.services.share_service import share_service

router = APIRouter()


@router.post("")
async def share_note(
    share: NoteShareCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Share one of your notes with another user by handle."""
    result = share_service.share_note(
        db=db,
        owner_id=current_user.id,
        note_id=share.note_id,
        shared_with_username=share.shared_with_username,
        permission=share.permission,
    )
    return result.to_response()


@router.delete("/{share_id}")
async def revoke_share(
    share_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Revoke a share; the note drops out of the recipient's searches immediately."""
    return share_service.revoke_share(db=db, owner_id=current_user.id, share_id=share_id).to_response()
