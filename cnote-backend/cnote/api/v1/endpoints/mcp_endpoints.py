import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from cnote.api.deps import get_current_active_user, get_db, get_mcp_service
from cnote.common.common_message import CommonMessage
from cnote.common.exceptions import CnoteError
from cnote.common.response_common import ResponseCommon
from cnote.models import User
from cnote.schemas.mcp import McpRequest
from cnote.services.mcp_service import McpService
from cnote.services.note_tools_service import ToolScope

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/{scope}")
async def handle_mcp_request(
    scope: ToolScope,
    request: McpRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    mcp: McpService = Depends(get_mcp_service),
):
    """
    JSON-RPC-style method dispatch over one tool scope.

    Methods: initialize, resources/list, resources/read, tools/list,
    tools/call, prompts/list, prompts/get.
    """
    try:
        result = mcp.handle(db, current_user.id, scope, request)
        response = ResponseCommon.success_response(data={"result": result})
    except CnoteError as exc:
        response = ResponseCommon.from_exception(exc)
    except Exception as exc:
        logger.error("Tool-protocol request %s failed: %s", request.method, exc, exc_info=True)
        response = ResponseCommon.error_response(
            message=CommonMessage.INTERNAL_ERROR,
            code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return response.to_response()


@router.get("/{scope}")
async def get_mcp_server_info(
    scope: ToolScope,
    current_user: User = Depends(get_current_active_user),
    mcp: McpService = Depends(get_mcp_service),
):
    return ResponseCommon.success_response(data=mcp.server_info(scope)).to_response()
