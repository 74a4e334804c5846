from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class NoteShareCreate(BaseModel):
    note_id: int
    shared_with_username: str = Field(..., min_length=1, max_length=50)
    permission: Literal["read", "write"] = "read"


class NoteShare(BaseModel):
    id: int
    note_id: int
    owner_id: int
    shared_with_user_id: int
    permission: str
    created_at: datetime

    class Config:
        from_attributes = True
