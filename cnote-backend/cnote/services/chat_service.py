import time
import logging
from typing import AsyncIterator, Callable, List, Optional, Tuple

from sqlalchemy.orm import Session

from cnote.common.constants import AIPrompts
from cnote.common.utils import build_chat_system_prompt
from cnote.config import settings
from cnote.db.session import SessionLocal
from cnote.models import ChatMessage, User
from cnote.schemas.chat import (
    ChatRole,
    ChatTurn,
    ContextItem,
    ConversationMessage,
    SearchResult,
    ToolResult,
    TurnState,
)
from cnote.services.completion_service import CompletionService, CompletionStream, completion_service
from cnote.services.embedding_service import EmbeddingService, embedding_service
from cnote.services.note_tools_service import ToolRegistry, tool_registry
from cnote.services.rag_context_service import VectorSearchService, build_context, vector_search_service

logger = logging.getLogger(__name__)


class ChatService:
    """Main chat orchestration service."""

    def __init__(
        self,
        completion: Optional[CompletionService] = None,
        embedder: Optional[EmbeddingService] = None,
        vector_search: Optional[VectorSearchService] = None,
        registry: Optional[ToolRegistry] = None,
        session_factory: Callable[[], Session] = SessionLocal,
        max_iterations: Optional[int] = None,
        history_limit: Optional[int] = None,
    ):
        self.completion = completion or completion_service
        self.embedder = embedder or embedding_service
        self.vector_search = vector_search or vector_search_service
        self.registry = registry or tool_registry
        self.session_factory = session_factory
        self.max_iterations = max(1, max_iterations or settings.CHAT_MAX_TOOL_ITERATIONS)
        self.history_limit = history_limit or settings.CHAT_HISTORY_LIMIT

    async def process_message(self, db: Session, user: User, message: str) -> ChatTurn:
        """Run one tool-calling turn and persist the final answer."""
        start_time = time.time()

        history = self._get_conversation_history(db, user.id)
        self._save_message(db, user.id, ChatRole.USER, message)
        results = await self._retrieve_context(db, user.id, message)

        system_prompt = build_chat_system_prompt(build_context(results))
        conversation = history + [ConversationMessage(role=ChatRole.USER, content=message)]
        tool_schemas = self.registry.schemas()

        records: List[ToolResult] = []
        last_content = ""
        answer = ""
        state = TurnState.AWAITING_MODEL
        iterations = 0

        for iterations in range(1, self.max_iterations + 1):
            reply = await self.completion.complete(system_prompt, conversation, tool_schemas)
            if reply.content.strip():
                last_content = reply.content

            if not reply.tool_calls:
                state = TurnState.DONE
                answer = reply.content if reply.content.strip() else (last_content or AIPrompts.FALLBACK_RESPONSE)
                break

            state = TurnState.HAS_TOOL_CALLS
            if iterations == self.max_iterations:
                break

            conversation.append(
                ConversationMessage(role=ChatRole.ASSISTANT, content=reply.content, tool_calls=reply.tool_calls)
            )
            state = TurnState.EXECUTING_TOOLS
            tool_results = await self.registry.execute_all(user.id, reply.tool_calls)
            records.extend(tool_results)
            conversation.extend(
                ConversationMessage(role=ChatRole.TOOL, tool_result=result) for result in tool_results
            )
            state = TurnState.AWAITING_MODEL

        if state != TurnState.DONE:
            state = TurnState.ITERATION_LIMIT_REACHED
            answer = last_content or AIPrompts.FALLBACK_RESPONSE
            logger.warning(
                "Chat turn for user %s hit the iteration limit (%d model calls)",
                user.id,
                iterations,
            )

        context = [ContextItem.from_search_result(result) for result in results]
        self._save_message(
            db,
            user.id,
            ChatRole.ASSISTANT,
            answer,
            tool_calls=[record.model_dump(mode="json") for record in records] or None,
            retrieved_chunks=self._context_record(results),
            response_time_ms=int((time.time() - start_time) * 1000),
        )

        logger.info(
            "Chat turn for user %s finished: state=%s iterations=%d tool_calls=%d context=%d",
            user.id, state.value, iterations, len(records), len(context),
        )
        return ChatTurn(
            message=answer,
            tool_calls=records,
            context=context,
            state=state,
            iterations=iterations,
        )

    async def stream_message(
        self, db: Session, user: User, message: str
    ) -> Tuple[CompletionStream, List[SearchResult]]:
        """Prepare a retrieval-only answer stream; no tools are offered."""
        history = self._get_conversation_history(db, user.id)
        self._save_message(db, user.id, ChatRole.USER, message)
        results = await self._retrieve_context(db, user.id, message)

        system_prompt = build_chat_system_prompt(build_context(results), with_tools=False)
        conversation = history + [ConversationMessage(role=ChatRole.USER, content=message)]
        return self.completion.stream(system_prompt, conversation), results

    async def relay_stream(
        self,
        user_id: int,
        stream: CompletionStream,
        results: List[SearchResult],
    ) -> AsyncIterator[str]:
        """Yield the stream's fragments; persist the answer only if it finished uncancelled."""
        start_time = time.time()
        fragments = []
        iterator = stream.__aiter__()
        try:
            async for fragment in iterator:
                fragments.append(fragment)
                yield fragment
        finally:
            await iterator.aclose()

        if not stream.completed:
            logger.info("Stream for user %s ended early, answer not persisted", user_id)
            return

        db = self.session_factory()
        try:
            self._save_message(
                db,
                user_id,
                ChatRole.ASSISTANT,
                "".join(fragments) or AIPrompts.FALLBACK_RESPONSE,
                retrieved_chunks=self._context_record(results),
                response_time_ms=int((time.time() - start_time) * 1000),
            )
        finally:
            db.close()

    def get_history(self, db: Session, user_id: int) -> List[ChatMessage]:
        return (
            db.query(ChatMessage)
            .filter(ChatMessage.user_id == user_id)
            .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
            .all()
        )

    def clear_history(self, db: Session, user_id: int) -> int:
        try:
            deleted = db.query(ChatMessage).filter(ChatMessage.user_id == user_id).delete()
            db.commit()
        except Exception:
            db.rollback()
            raise
        logger.info("Cleared %d chat messages for user %s", deleted, user_id)
        return deleted

    async def _retrieve_context(self, db: Session, user_id: int, message: str) -> List[SearchResult]:
        query_vector = await self.embedder.embed_query(message)
        return self.vector_search.search(db, user_id, query_vector)

    def _get_conversation_history(self, db: Session, user_id: int) -> List[ConversationMessage]:
        messages = (
            db.query(ChatMessage)
            .filter(
                ChatMessage.user_id == user_id,
                ChatMessage.role != ChatRole.SYSTEM.value,
            )
            .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
            .limit(self.history_limit)
            .all()
        )
        return [
            ConversationMessage(role=ChatRole(msg.role), content=msg.content)
            for msg in reversed(messages)
            if msg.role in (ChatRole.USER.value, ChatRole.ASSISTANT.value)
        ]

    @staticmethod
    def _context_record(results: List[SearchResult]) -> Optional[list]:
        if not results:
            return None
        return [
            {**ContextItem.from_search_result(result).model_dump(), "chunk_id": result.chunk_id}
            for result in results
        ]

    @staticmethod
    def _save_message(
        db: Session,
        user_id: int,
        role: ChatRole,
        content: str,
        tool_calls: Optional[list] = None,
        retrieved_chunks: Optional[list] = None,
        response_time_ms: Optional[int] = None,
    ) -> ChatMessage:
        chat_message = ChatMessage(
            user_id=user_id,
            role=role.value,
            content=content,
            tool_calls=tool_calls,
            retrieved_chunks=retrieved_chunks,
            response_time_ms=response_time_ms,
        )
        try:
            db.add(chat_message)
            db.commit()
            db.refresh(chat_message)
        except Exception:
            db.rollback()
            raise
        return chat_message


chat_service = ChatService()
