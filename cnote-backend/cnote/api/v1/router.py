from fastapi import APIRouter

from cnote.api.v1.endpoints import (
    chat_endpoints,
    mcp_endpoints,
    note_endpoints,
    share_endpoints,
    task_endpoints,
)

api_router = APIRouter()

api_router.include_router(chat_endpoints.router, prefix="/chat", tags=["chat"])
api_router.include_router(mcp_endpoints.router, prefix="/mcp", tags=["mcp"])
api_router.include_router(note_endpoints.router, prefix="/notes", tags=["notes"])
api_router.include_router(share_endpoints.router, prefix="/shares", tags=["shares"])
api_router.include_router(task_endpoints.router, prefix="/tasks", tags=["tasks"])
