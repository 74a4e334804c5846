import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from cnote.api.deps import get_chat_service, get_current_active_user, get_db
from cnote.common.common_message import CommonMessage
from cnote.common.exceptions import CnoteError
from cnote.common.response_common import ResponseCommon
from cnote.models import User
from cnote.schemas.chat import ChatHistoryResponse, ChatMessageCreate, ChatMessageHistoryItem
from cnote.services.chat_service import ChatService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("")
async def send_chat_message(
    message_data: ChatMessageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    chat: ChatService = Depends(get_chat_service),
):
    """
    Answer a message with retrieved note context and tool calls.

    Returns the answer, every tool call with its result or error, the
    retrieved context, the final loop state and the number of model calls.
    """
    try:
        turn = await chat.process_message(db=db, user=current_user, message=message_data.message)
        response = ResponseCommon.success_response(
            data=turn.model_dump(mode="json"),
            message=CommonMessage.CHAT_MESSAGE_PROCESSED,
        )
    except CnoteError as exc:
        response = ResponseCommon.from_exception(exc)
    except Exception as exc:
        logger.error("Failed to process chat message: %s", exc, exc_info=True)
        response = ResponseCommon.error_response(
            message=f"Failed to process message: {str(exc)}",
            code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return response.to_response()


@router.post("/stream")
async def stream_chat_message(
    message_data: ChatMessageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    chat: ChatService = Depends(get_chat_service),
):
    """Stream a retrieval-only answer as plain text."""
    try:
        stream, results = await chat.stream_message(db=db, user=current_user, message=message_data.message)
    except CnoteError as exc:
        return ResponseCommon.from_exception(exc).to_response()

    return StreamingResponse(
        chat.relay_stream(current_user.id, stream, results),
        media_type="text/plain",
    )


@router.get("")
async def get_chat_history(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    chat: ChatService = Depends(get_chat_service),
):
    messages = chat.get_history(db, current_user.id)
    history = ChatHistoryResponse(
        messages=[ChatMessageHistoryItem.model_validate(msg) for msg in messages],
        total=len(messages),
    )
    return ResponseCommon.success_response(
        data=history.model_dump(mode="json"),
        message=CommonMessage.CHAT_HISTORY_RETRIEVED,
    ).to_response()


@router.delete("")
async def clear_chat_history(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    chat: ChatService = Depends(get_chat_service),
):
    deleted = chat.clear_history(db, current_user.id)
    return ResponseCommon.success_response(
        data={"deleted": deleted},
        message=CommonMessage.CHAT_HISTORY_CLEARED,
    ).to_response()
