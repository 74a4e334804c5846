from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"
    SYSTEM = "system"


class TurnState(str, Enum):
    AWAITING_MODEL = "AWAITING_MODEL"
    HAS_TOOL_CALLS = "HAS_TOOL_CALLS"
    EXECUTING_TOOLS = "EXECUTING_TOOLS"
    DONE = "DONE"
    ITERATION_LIMIT_REACHED = "ITERATION_LIMIT_REACHED"


class ToolInvocation(BaseModel):
    """A model-issued request to run one namespaced tool."""
    id: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class ToolError(BaseModel):
    type: str
    message: str


class ToolResult(BaseModel):
    """Outcome of one tool invocation; exactly one of result/error is set."""
    id: str
    tool: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    result: Optional[Any] = None
    error: Optional[ToolError] = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def payload(self) -> dict:
        if self.error is not None:
            return {"error": self.error.model_dump()}
        return {"result": self.result}


class ConversationMessage(BaseModel):
    """In-memory conversation entry handed to the completion client."""
    role: ChatRole
    content: str = ""
    tool_calls: List[ToolInvocation] = Field(default_factory=list)
    tool_result: Optional[ToolResult] = None


class ModelReply(BaseModel):
    content: str = ""
    tool_calls: List[ToolInvocation] = Field(default_factory=list)


class SearchResult(BaseModel):
    chunk_id: int
    note_id: int
    note_title: str
    chunk_text: str
    chunk_index: int
    similarity: float
    is_own_note: bool
    owner_handle: Optional[str] = None


class ContextItem(BaseModel):
    note_id: int
    title: str
    similarity: float
    is_own_note: bool
    owner_handle: Optional[str] = None

    @classmethod
    def from_search_result(cls, result: SearchResult) -> "ContextItem":
        return cls(
            note_id=result.note_id,
            title=result.note_title,
            similarity=result.similarity,
            is_own_note=result.is_own_note,
            owner_handle=result.owner_handle,
        )


class ChatTurn(BaseModel):
    message: str
    tool_calls: List[ToolResult] = []
    context: List[ContextItem] = []
    state: TurnState
    iterations: int


class ChatMessageCreate(BaseModel):
    message: str = Field(..., min_length=1)


class ChatMessageHistoryItem(BaseModel):
    message_id: str
    role: str
    content: str
    tool_calls: Optional[Any] = None
    retrieved_chunks: Optional[Any] = None
    response_time_ms: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ChatHistoryResponse(BaseModel):
    messages: List[ChatMessageHistoryItem]
    total: int
