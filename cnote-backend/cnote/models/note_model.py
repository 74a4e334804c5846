from cnote.models.base_import import Base, Column, Integer, String, Boolean, DateTime, datetime, timezone, Text, ForeignKey, relationship


class Note(Base):
    __tablename__ = "notes"
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    
    # Content
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False, default="")
    
    # Collaboration
    is_shared = Column(Boolean, default=False)
    
    # Timestamps
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    
    # Relationships
    user = relationship("User", back_populates="notes")
    chunks = relationship("NoteChunk", back_populates="note", cascade="all, delete-orphan")
    shares = relationship("NoteShare", back_populates="note", cascade="all, delete-orphan")
