from pydantic import BaseModel, Field
from typing import Optional, Any
from datetime import datetime


class TaskJobResponse(BaseModel):
    """Individual task job response"""
    job_id: str = Field(..., alias="id")
    task_type: str
    status: str
    result: Optional[Any] = None
    error_message: Optional[str] = None
    attempts: int = 0
    note_id: Optional[int] = None
    metadata: Optional[dict] = Field(None, alias="metadata_json")
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
        populate_by_name = True
