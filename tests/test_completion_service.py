"""
Tests for the chat model client: message mapping, reply parsing and streaming.
"""

import pytest

from cnote.common.exceptions import UpstreamServiceError
from cnote.schemas.chat import ChatRole, ConversationMessage, ToolError, ToolResult
from cnote.services.completion_service import (
    CompletionService,
    build_contents,
    build_tools,
    parse_reply,
)

from helpers import FakeChatModels, FakeGenaiClient, genai_response, tool_call


def _service(models: FakeChatModels, **kwargs) -> CompletionService:
    return CompletionService(client=FakeGenaiClient(models), model_name="test-model", **kwargs)


class TestBuildContents:
    def test_maps_roles_and_skips_system(self):
        # Arrange
        call = tool_call("private_get_note", call_id="call_1", note_id=3)
        messages = [
            ConversationMessage(role=ChatRole.SYSTEM, content="ignored"),
            ConversationMessage(role=ChatRole.USER, content="What did I buy?"),
            ConversationMessage(role=ChatRole.ASSISTANT, content="", tool_calls=[call]),
            ConversationMessage(
                role=ChatRole.TOOL,
                tool_result=ToolResult(id="call_1", tool="private_get_note", result={"title": "Groceries"}),
            ),
        ]

        # Act
        contents = build_contents(messages)

        # Assert
        assert [c.role for c in contents] == ["user", "model", "tool"]
        assert contents[0].parts[0].text == "What did I buy?"
        assert contents[1].parts[0].function_call.name == "private_get_note"
        assert contents[1].parts[0].function_call.args == {"note_id": 3}
        response = contents[2].parts[0].function_response
        assert response.id == "call_1"
        assert response.response == {"result": {"title": "Groceries"}}

    def test_parallel_tool_results_share_one_content(self):
        # Arrange
        calls = [
            tool_call("private_get_note", call_id="call_1", note_id=1),
            tool_call("shared_list_shared_notes", call_id="call_2"),
        ]
        messages = [
            ConversationMessage(role=ChatRole.USER, content="Compare my notes"),
            ConversationMessage(role=ChatRole.ASSISTANT, tool_calls=calls),
            ConversationMessage(
                role=ChatRole.TOOL,
                tool_result=ToolResult(id="call_1", tool="private_get_note", result={"title": "Mine"}),
            ),
            ConversationMessage(
                role=ChatRole.TOOL,
                tool_result=ToolResult(id="call_2", tool="shared_list_shared_notes", result={"notes": []}),
            ),
        ]

        # Act
        contents = build_contents(messages)

        # Assert
        assert [c.role for c in contents] == ["user", "model", "tool"]
        assert len(contents[1].parts) == 2
        responses = [part.function_response for part in contents[2].parts]
        assert [r.id for r in responses] == ["call_1", "call_2"]
        assert [r.name for r in responses] == ["private_get_note", "shared_list_shared_notes"]

    def test_tool_results_after_new_model_turn_start_new_content(self):
        result = ToolResult(id="call_1", tool="private_list_recent_notes", result={"notes": []})
        messages = [
            ConversationMessage(role=ChatRole.ASSISTANT, tool_calls=[tool_call("private_list_recent_notes")]),
            ConversationMessage(role=ChatRole.TOOL, tool_result=result),
            ConversationMessage(role=ChatRole.ASSISTANT, tool_calls=[tool_call("private_list_recent_notes")]),
            ConversationMessage(role=ChatRole.TOOL, tool_result=result),
        ]

        contents = build_contents(messages)

        assert [c.role for c in contents] == ["model", "tool", "model", "tool"]
        assert [len(c.parts) for c in contents] == [1, 1, 1, 1]

    def test_tool_error_is_sent_as_error_payload(self):
        result = ToolResult(
            id="call_9",
            tool="shared_get_shared_note",
            error=ToolError(type="AccessDeniedError", message="no access"),
        )

        contents = build_contents([ConversationMessage(role=ChatRole.TOOL, tool_result=result)])

        assert contents[0].parts[0].function_response.response == {
            "error": {"type": "AccessDeniedError", "message": "no access"}
        }

    def test_empty_assistant_message_is_dropped(self):
        assert build_contents([ConversationMessage(role=ChatRole.ASSISTANT, content="")]) == []


class TestBuildTools:
    def test_no_schemas_means_no_tools(self):
        assert build_tools([]) is None

    def test_declares_each_tool(self):
        tools = build_tools([
            {
                "name": "private_get_note",
                "description": "Get a note",
                "parameters": {
                    "type": "object",
                    "properties": {"note_id": {"type": "integer", "description": "Note id"}},
                    "required": ["note_id"],
                },
            },
            {"name": "shared_list_shared_notes", "description": "List", "parameters": {"properties": {}}},
        ])

        declarations = tools[0].function_declarations
        assert [d.name for d in declarations] == ["private_get_note", "shared_list_shared_notes"]
        assert declarations[0].parameters.required == ["note_id"]
        assert declarations[1].parameters is None


class TestParseReply:
    def test_collects_text_and_tool_calls(self):
        response = genai_response(
            text="Let me check.",
            function_calls=[{"id": "fc-1", "name": "private_search_notes", "args": {"query": "milk"}}],
        )

        reply = parse_reply(response)

        assert reply.content == "Let me check."
        assert reply.tool_calls[0].id == "fc-1"
        assert reply.tool_calls[0].arguments == {"query": "milk"}

    def test_generates_id_when_model_omits_one(self):
        response = genai_response(function_calls=[{"id": None, "name": "private_list_recent_notes", "args": None}])

        reply = parse_reply(response)

        assert reply.tool_calls[0].id.startswith("call_")
        assert reply.tool_calls[0].arguments == {}

    def test_reply_without_parts_is_empty(self):
        reply = parse_reply(genai_response())

        assert reply.content == ""
        assert reply.tool_calls == []


class TestComplete:
    @pytest.mark.asyncio
    async def test_sends_system_prompt_and_tools(self):
        models = FakeChatModels(responses=[genai_response(text="Hello")])
        schemas = [{"name": "private_get_note", "description": "d", "parameters": {}}]

        reply = await _service(models).complete(
            "system text",
            [ConversationMessage(role=ChatRole.USER, content="hi")],
            schemas,
        )

        config = models.calls[0]["config"]
        assert reply.content == "Hello"
        assert models.calls[0]["model"] == "test-model"
        assert config.system_instruction == "system text"
        assert config.tools[0].function_declarations[0].name == "private_get_note"

    @pytest.mark.asyncio
    async def test_provider_error_becomes_upstream_error(self):
        models = FakeChatModels(error=RuntimeError("boom"))

        with pytest.raises(UpstreamServiceError) as exc_info:
            await _service(models).complete("s", [ConversationMessage(role=ChatRole.USER, content="hi")])

        assert exc_info.value.details["service"] == "completion"

    @pytest.mark.asyncio
    async def test_timeout_becomes_upstream_error(self):
        models = FakeChatModels(responses=[genai_response(text="late")], delay=0.5)

        with pytest.raises(UpstreamServiceError):
            await _service(models, timeout_seconds=0.01).complete(
                "s", [ConversationMessage(role=ChatRole.USER, content="hi")]
            )


class TestCompletionStream:
    @pytest.mark.asyncio
    async def test_yields_fragments_in_order(self):
        models = FakeChatModels(fragments=["Hel", "lo", " there"])
        stream = _service(models).stream("s", [ConversationMessage(role=ChatRole.USER, content="hi")])

        assert await stream.collect() == "Hello there"
        assert stream.completed is True

    @pytest.mark.asyncio
    async def test_can_be_consumed_again(self):
        models = FakeChatModels(fragments=["a", "b"])
        stream = _service(models).stream("s", [ConversationMessage(role=ChatRole.USER, content="hi")])

        first = await stream.collect()
        second = await stream.collect()

        assert first == second == "ab"
        assert models.stream_calls == 2

    @pytest.mark.asyncio
    async def test_cancel_stops_and_closes_upstream(self):
        # Arrange
        models = FakeChatModels(fragments=["one", "two", "three"])
        stream = _service(models).stream("s", [ConversationMessage(role=ChatRole.USER, content="hi")])
        received = []

        # Act
        async for fragment in stream:
            received.append(fragment)
            stream.cancel()

        # Assert
        assert received == ["one"]
        assert stream.cancelled is True
        assert stream.completed is False
        assert models.closed_streams == 1
