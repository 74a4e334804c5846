"""
Tests for the chat orchestrator.

The completion client and embedder are scripted doubles; retrieval, tools and
persistence run against the SQLite test database.
"""

import pytest

from cnote.common.constants import AIPrompts
from cnote.models import ChatMessage
from cnote.schemas.chat import ChatRole, ModelReply, TurnState
from cnote.services.chat_service import ChatService
from cnote.services.completion_service import CompletionService
from cnote.services.note_tools_service import ToolRegistry

from helpers import FakeChatModels, FakeEmbedder, FakeGenaiClient, ScriptedCompletion, make_vector, tool_call


@pytest.fixture
def alice(make_user):
    return make_user("alice")


@pytest.fixture
def indexed_note(alice, make_note, add_chunk):
    note = make_note(alice, "Groceries", "Buy milk and eggs")
    add_chunk(note, "Groceries Buy milk and eggs", (1.0, 0.0))
    return note


def _chat(completion, query_vector=(1.0, 0.0), **kwargs) -> ChatService:
    return ChatService(
        completion=completion,
        embedder=FakeEmbedder(make_vector(*query_vector)),
        registry=ToolRegistry(),
        **kwargs,
    )


def _stored(db, alice):
    db.expire_all()
    return (
        db.query(ChatMessage)
        .filter(ChatMessage.user_id == alice.id)
        .order_by(ChatMessage.id)
        .all()
    )


class TestProcessMessage:
    @pytest.mark.asyncio
    async def test_plain_answer_finishes_in_one_iteration(self, db, alice, indexed_note):
        # Arrange
        completion = ScriptedCompletion([ModelReply(content="You need milk and eggs.")])

        # Act
        turn = await _chat(completion).process_message(db, alice, "What should I buy?")

        # Assert
        assert turn.message == "You need milk and eggs."
        assert turn.state == TurnState.DONE
        assert turn.iterations == 1
        assert turn.tool_calls == []
        assert [c.note_id for c in turn.context] == [indexed_note.id]
        assert turn.context[0].is_own_note is True
        assert '[1] Your note - "Groceries"' in completion.calls[0]["system_prompt"]

    @pytest.mark.asyncio
    async def test_persists_user_and_assistant_messages(self, db, alice, indexed_note):
        completion = ScriptedCompletion([ModelReply(content="Milk.")])

        await _chat(completion).process_message(db, alice, "What should I buy?")

        stored = _stored(db, alice)
        assert [(m.role, m.content) for m in stored] == [("user", "What should I buy?"), ("assistant", "Milk.")]
        assert stored[1].retrieved_chunks[0]["note_id"] == indexed_note.id
        assert stored[1].response_time_ms is not None

    @pytest.mark.asyncio
    async def test_no_relevant_notes_uses_explicit_context_line(self, db, alice, indexed_note):
        completion = ScriptedCompletion([ModelReply(content="I could not find anything.")])

        turn = await _chat(completion, query_vector=(0.0, 1.0)).process_message(db, alice, "Weather?")

        assert turn.context == []
        assert AIPrompts.NO_CONTEXT in completion.calls[0]["system_prompt"]
        assert turn.state == TurnState.DONE

    @pytest.mark.asyncio
    async def test_runs_tools_and_feeds_results_back(self, db, alice, indexed_note):
        # Arrange
        completion = ScriptedCompletion([
            ModelReply(tool_calls=[tool_call("private_get_note", call_id="call_1", note_id=indexed_note.id)]),
            ModelReply(content="Your list says milk and eggs."),
        ])

        # Act
        turn = await _chat(completion).process_message(db, alice, "Open my groceries note")

        # Assert
        assert turn.state == TurnState.DONE
        assert turn.iterations == 2
        assert turn.tool_calls[0].result["content"] == "Buy milk and eggs"
        second_messages = completion.calls[1]["messages"]
        assert [m.role for m in second_messages[-2:]] == [ChatRole.ASSISTANT, ChatRole.TOOL]
        assert second_messages[-1].tool_result.id == "call_1"

    @pytest.mark.asyncio
    async def test_failing_tool_does_not_abort_turn(self, db, alice, indexed_note):
        completion = ScriptedCompletion([
            ModelReply(tool_calls=[
                tool_call("private_no_such_tool", call_id="call_bad"),
                tool_call("private_list_recent_notes", call_id="call_ok"),
            ]),
            ModelReply(content="Here is what I found."),
        ])

        turn = await _chat(completion).process_message(db, alice, "List things")

        assert turn.state == TurnState.DONE
        assert [r.id for r in turn.tool_calls] == ["call_bad", "call_ok"]
        assert turn.tool_calls[0].error.type == "ToolExecutionError"
        assert turn.tool_calls[1].error is None

    @pytest.mark.asyncio
    async def test_iteration_cap_returns_fallback(self, db, alice, indexed_note):
        # Arrange
        completion = ScriptedCompletion([ModelReply(tool_calls=[tool_call("private_list_recent_notes")])])

        # Act
        turn = await _chat(completion, max_iterations=5).process_message(db, alice, "Loop forever")

        # Assert
        assert turn.state == TurnState.ITERATION_LIMIT_REACHED
        assert turn.iterations == 5
        assert len(completion.calls) == 5
        assert len(turn.tool_calls) == 4
        assert turn.message == AIPrompts.FALLBACK_RESPONSE

    @pytest.mark.asyncio
    async def test_iteration_cap_keeps_last_model_text(self, db, alice, indexed_note):
        completion = ScriptedCompletion([
            ModelReply(content="Still looking...", tool_calls=[tool_call("private_list_recent_notes")]),
        ])

        turn = await _chat(completion, max_iterations=2).process_message(db, alice, "Keep going")

        assert turn.state == TurnState.ITERATION_LIMIT_REACHED
        assert turn.message == "Still looking..."

    @pytest.mark.asyncio
    async def test_history_excludes_system_messages_and_respects_limit(self, db, alice, indexed_note):
        # Arrange
        for role, content in [
            ("user", "oldest question"),
            ("system", "internal note"),
            ("assistant", "oldest answer"),
            ("user", "recent question"),
            ("assistant", "recent answer"),
        ]:
            db.add(ChatMessage(user_id=alice.id, role=role, content=content))
        db.commit()
        completion = ScriptedCompletion([ModelReply(content="ok")])

        # Act
        await _chat(completion, history_limit=2).process_message(db, alice, "new question")

        # Assert
        messages = completion.calls[0]["messages"]
        assert [(m.role, m.content) for m in messages] == [
            (ChatRole.USER, "recent question"),
            (ChatRole.ASSISTANT, "recent answer"),
            (ChatRole.USER, "new question"),
        ]


class TestStreaming:
    @pytest.mark.asyncio
    async def test_completed_stream_is_persisted(self, db, alice, indexed_note):
        # Arrange
        completion = CompletionService(client=FakeGenaiClient(FakeChatModels(fragments=["Milk ", "and eggs."])))
        chat = _chat(completion)

        # Act
        stream, results = await chat.stream_message(db, alice, "What should I buy?")
        fragments = [fragment async for fragment in chat.relay_stream(alice.id, stream, results)]

        # Assert
        assert fragments == ["Milk ", "and eggs."]
        assert [r.note_id for r in results] == [indexed_note.id]
        stored = _stored(db, alice)
        assert [(m.role, m.content) for m in stored] == [
            ("user", "What should I buy?"),
            ("assistant", "Milk and eggs."),
        ]

    @pytest.mark.asyncio
    async def test_cancelled_stream_is_not_persisted(self, db, alice, indexed_note):
        completion = CompletionService(client=FakeGenaiClient(FakeChatModels(fragments=["a", "b", "c"])))
        chat = _chat(completion)

        stream, results = await chat.stream_message(db, alice, "Tell me")
        received = []
        async for fragment in chat.relay_stream(alice.id, stream, results):
            received.append(fragment)
            stream.cancel()

        assert received == ["a"]
        assert [m.role for m in _stored(db, alice)] == ["user"]


class TestHistory:
    def test_clear_history_reports_deleted_count(self, db, alice):
        for content in ("one", "two", "three"):
            db.add(ChatMessage(user_id=alice.id, role="user", content=content))
        db.commit()
        chat = _chat(ScriptedCompletion([ModelReply(content="")]))

        assert chat.clear_history(db, alice.id) == 3
        assert chat.get_history(db, alice.id) == []
