from cnote.models.base_import import Base, Column, Integer, String, DateTime, datetime, timezone, ForeignKey, UniqueConstraint, relationship


class NoteShare(Base):
    """
    Grant allowing a user other than the owner to read a note.
    The share is valid for as long as the row exists.
    """
    __tablename__ = "note_shares"
    __table_args__ = (
        UniqueConstraint("note_id", "shared_with_user_id", name="uq_note_shares_note_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    note_id = Column(Integer, ForeignKey("notes.id", ondelete="CASCADE"), nullable=False, index=True)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    shared_with_user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    permission = Column(String(10), nullable=False, default="read")  # read, write
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    note = relationship("Note", back_populates="shares")
    owner = relationship("User", foreign_keys=[owner_id])
    shared_with_user = relationship("User", foreign_keys=[shared_with_user_id])
