# Import all the models, so that Base has them before being
# imported by Alembic
from cnote.models.base_import import Base  # noqa
from cnote.models.user_model import User  # noqa
from cnote.models.note_model import Note  # noqa
from cnote.models.note_share_model import NoteShare  # noqa
from cnote.models.note_chunk_model import NoteChunk  # noqa
from cnote.models.task_job_model import TaskJob  # noqa
from cnote.models.chat_model import ChatMessage  # noqa
