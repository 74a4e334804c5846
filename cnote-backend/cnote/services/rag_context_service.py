import logging
from typing import List, Optional

from pgvector.sqlalchemy import Vector
from sqlalchemy import cast, func, or_, select
from sqlalchemy.orm import Session

from cnote.common.constants import AIPrompts
from cnote.config import settings
from cnote.models import Note, NoteChunk, NoteShare, User
from cnote.schemas.chat import SearchResult
from cnote.services.embedding_service import calculate_cosine_similarity

logger = logging.getLogger(__name__)


class VectorSearchService:
    """Cosine top-K search over the chunks a user may read."""

    def search(
        self,
        db: Session,
        requester_id: int,
        query_vector: List[float],
        top_k: Optional[int] = None,
        min_similarity: Optional[float] = None,
    ) -> List[SearchResult]:
        top_k = settings.SEARCH_TOP_K if top_k is None else top_k
        min_similarity = settings.SEARCH_MIN_SIMILARITY if min_similarity is None else min_similarity
        if top_k <= 0:
            return []

        query_vector = [float(value) for value in query_vector]
        if db.get_bind().dialect.name == "postgresql":
            scored = self._score_in_database(db, requester_id, query_vector, top_k, min_similarity)
        else:
            scored = self._score_in_python(db, requester_id, query_vector, top_k, min_similarity)

        results = [
            SearchResult(
                chunk_id=chunk.id,
                note_id=note.id,
                note_title=note.title,
                chunk_text=chunk.chunk_text,
                chunk_index=chunk.chunk_index,
                similarity=similarity,
                is_own_note=note.user_id == requester_id,
                owner_handle=None if note.user_id == requester_id else owner.username,
            )
            for chunk, note, owner, similarity in scored
        ]
        logger.info("Vector search for user %s: %d hits", requester_id, len(results))
        return results

    def _candidate_query(self, db: Session, requester_id: int, *columns):
        shared_note_ids = select(NoteShare.note_id).where(
            NoteShare.shared_with_user_id == requester_id
        )
        return (
            db.query(NoteChunk, Note, User, *columns)
            .select_from(NoteChunk)
            .join(Note, NoteChunk.note_id == Note.id)
            .join(User, Note.user_id == User.id)
            .filter(
                or_(
                    Note.user_id == requester_id,
                    Note.id.in_(shared_note_ids),
                )
            )
        )

    def _score_in_database(self, db, requester_id, query_vector, top_k, min_similarity):
        # Cast embedding to vector type for pgvector cosine_distance function
        embedding_vector = cast(query_vector, Vector(len(query_vector)))
        distance = func.cosine_distance(NoteChunk.embedding, embedding_vector)
        rows = (
            self._candidate_query(db, requester_id, distance.label("distance"))
            .filter(distance <= 1 - min_similarity)
            .order_by(distance, NoteChunk.id)
            .limit(top_k)
            .all()
        )
        return [(chunk, note, owner, 1 - float(dist)) for chunk, note, owner, dist in rows]

    def _score_in_python(self, db, requester_id, query_vector, top_k, min_similarity):
        scored = []
        for chunk, note, owner in self._candidate_query(db, requester_id).all():
            similarity = calculate_cosine_similarity(query_vector, chunk.embedding)
            if similarity >= min_similarity:
                scored.append((chunk, note, owner, similarity))
        scored.sort(key=lambda row: (-row[3], row[0].id))
        return scored[:top_k]


def build_context(results: List[SearchResult]) -> str:
    """Render numbered context blocks, or the explicit no-notes line."""
    if not results:
        return AIPrompts.NO_CONTEXT

    context = AIPrompts.CONTEXT_INTRO + AIPrompts.CONTEXT_HEADER
    for index, result in enumerate(results, start=1):
        source = "Your note" if result.is_own_note else f"Shared by @{result.owner_handle}"
        context += f'[{index}] {source} - "{result.note_title or "Untitled"}":\n{result.chunk_text}\n\n'
    return context


vector_search_service = VectorSearchService()
