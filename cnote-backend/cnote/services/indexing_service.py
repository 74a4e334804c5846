"""
Re-indexing pipeline: regenerates the full chunk set of a note.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from cnote.models import Note, NoteChunk
from cnote.services.chunking_service import chunk_text, normalize_text, prepare_note_text
from cnote.services.embedding_service import EmbeddingService, embedding_service

logger = logging.getLogger(__name__)


async def reindex_note(
    db: Session,
    note: Note,
    embedder: Optional[EmbeddingService] = None,
) -> int:
    """
    Replace all chunks of ``note`` with freshly embedded ones.

    Embedding happens before any row is touched, so a provider failure
    leaves the previous chunk set intact.

    Returns:
        Number of chunks written
    """
    embedder = embedder or embedding_service
    text = prepare_note_text(note.title, note.content)

    if not normalize_text(text):
        try:
            deleted = db.query(NoteChunk).filter(NoteChunk.note_id == note.id).delete()
            db.commit()
        except Exception:
            db.rollback()
            raise
        logger.info("Note %s has no text, removed %d chunks", note.id, deleted)
        return 0

    chunks = chunk_text(text)
    vectors = await embedder.embed_many([chunk["text"] for chunk in chunks])

    try:
        db.query(NoteChunk).filter(NoteChunk.note_id == note.id).delete()
        for chunk, vector in zip(chunks, vectors):
            db.add(NoteChunk(
                note_id=note.id,
                user_id=note.user_id,
                chunk_text=chunk["text"],
                chunk_index=chunk["index"],
                embedding=vector,
                start_char=chunk["start_char"],
                end_char=chunk["end_char"],
            ))
        db.commit()
    except Exception:
        db.rollback()
        logger.error("Failed to store chunks for note %s", note.id, exc_info=True)
        raise

    logger.info("Re-indexed note %s: %d chunks", note.id, len(chunks))
    return len(chunks)
