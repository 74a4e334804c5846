from cnote.models.base_import import Base, Column, Integer, DateTime, datetime, timezone, Text, ForeignKey, relationship
from cnote.config import settings
from pgvector.sqlalchemy import Vector

class NoteChunk(Base):
    """
    Model for storing chunks of note content with embeddings for RAG.
    The chunk set of a note is always regenerated as a whole.
    """
    __tablename__ = "note_chunks"
    
    id = Column(Integer, primary_key=True, index=True)
    note_id = Column(Integer, ForeignKey("notes.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)  # note owner
    
    # Chunk content and metadata
    chunk_text = Column(Text, nullable=False)
    chunk_index = Column(Integer, nullable=False)  # Order of chunk in original text
    
    # Vector embedding for the chunk
    embedding = Column(Vector(settings.EMBEDDING_DIMENSION), nullable=False)
    
    # Position in the normalized note text
    start_char = Column(Integer, nullable=True)
    end_char = Column(Integer, nullable=True)
    
    # Timestamps
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    
    # Relationships
    note = relationship("Note", back_populates="chunks")
