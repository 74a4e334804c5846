from typing import Any, Optional

from pydantic import BaseModel, Field


class McpRequest(BaseModel):
    method: str = Field(..., min_length=1)
    params: dict[str, Any] = Field(default_factory=dict)


class ResourceReadParams(BaseModel):
    uri: str = Field(..., min_length=1)


class ToolCallParams(BaseModel):
    name: str = Field(..., min_length=1)
    arguments: dict[str, Any] = Field(default_factory=dict)


class PromptGetParams(BaseModel):
    name: str = Field(..., min_length=1)
    arguments: dict[str, Optional[str]] = Field(default_factory=dict)
