from .user_model import User
from .note_model import Note
from .note_share_model import NoteShare
from .note_chunk_model import NoteChunk
from .task_job_model import TaskJob
from .chat_model import ChatMessage

__all__ = [
    "User",
    "Note",
    "NoteShare",
    "NoteChunk",
    "TaskJob",
    "ChatMessage",
]
