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


class TaskJob(Base):
    __tablename__ = "task_jobs"

    id = Column(String, primary_key=True, index=True)
    task_type = Column(String, nullable=False, index=True)
    status = Column(String, default="pending", index=True)
    result = Column(Text, nullable=True)
    error_message = Column(Text, nullable=True)
    attempts = Column(Integer, default=0)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    note_id = Column(Integer, nullable=True, index=True)  # no FK: the job outlives a deleted note
    metadata_json = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    user = relationship("User", back_populates="task_jobs")
