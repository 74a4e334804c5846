import uuid
from sqlalchemy import JSON

from cnote.models.base_import import (
    Base,
    Column,
    Integer,
    String,
    DateTime,
    Text,
    ForeignKey,
    relationship,
    datetime,
    timezone,
)


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, index=True)
    message_id = Column(String, unique=True, index=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(20), nullable=False)  # user, assistant, tool, system
    content = Column(Text, nullable=False)

    tool_calls = Column(JSON, nullable=True)
    retrieved_chunks = Column(JSON, nullable=True)

    response_time_ms = Column(Integer, nullable=True)

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), index=True)

    user = relationship("User", back_populates="chat_messages")
