"""
Access to the external chat model (Gemini through google-genai).
"""
import asyncio
import logging
import uuid
from typing import Any, AsyncIterator, List, Optional

from google import genai
from google.genai import types

from cnote.common.exceptions import UpstreamServiceError
from cnote.config import settings
from cnote.schemas.chat import ChatRole, ConversationMessage, ModelReply, ToolInvocation

logger = logging.getLogger(__name__)


def _to_schema(parameters: dict) -> types.Schema:
    properties = {
        name: types.Schema(
            type=prop.get("type", "string").upper(),
            description=prop.get("description") or None,
        )
        for name, prop in parameters.get("properties", {}).items()
    }
    return types.Schema(
        type="OBJECT",
        properties=properties,
        required=list(parameters.get("required", [])),
    )


def build_tools(tool_schemas: Optional[List[dict]]) -> Optional[List[types.Tool]]:
    if not tool_schemas:
        return None
    declarations = []
    for schema in tool_schemas:
        parameters = schema.get("parameters") or {}
        declarations.append(
            types.FunctionDeclaration(
                name=schema["name"],
                description=schema.get("description", ""),
                parameters=_to_schema(parameters) if parameters.get("properties") else None,
            )
        )
    return [types.Tool(function_declarations=declarations)]


def build_contents(messages: List[ConversationMessage]) -> List[types.Content]:
    """
    Map conversation roles onto Gemini contents; system messages are skipped.

    Consecutive tool results share one ``tool`` content, one function
    response part per result, matching the calls of the preceding turn.
    """
    contents = []
    for message in messages:
        if message.role == ChatRole.USER:
            contents.append(types.Content(role="user", parts=[types.Part(text=message.content)]))
        elif message.role == ChatRole.ASSISTANT:
            parts = []
            if message.content:
                parts.append(types.Part(text=message.content))
            for call in message.tool_calls:
                parts.append(
                    types.Part(function_call=types.FunctionCall(id=call.id, name=call.name, args=call.arguments))
                )
            if parts:
                contents.append(types.Content(role="model", parts=parts))
        elif message.role == ChatRole.TOOL and message.tool_result is not None:
            result = message.tool_result
            part = types.Part(
                function_response=types.FunctionResponse(
                    id=result.id,
                    name=result.tool,
                    response=result.payload(),
                )
            )
            if contents and contents[-1].role == "tool":
                contents[-1].parts.append(part)
            else:
                contents.append(types.Content(role="tool", parts=[part]))
    return contents


def parse_reply(response: Any) -> ModelReply:
    texts = []
    tool_calls = []
    candidates = getattr(response, "candidates", None) or []
    content = getattr(candidates[0], "content", None) if candidates else None
    for part in getattr(content, "parts", None) or []:
        function_call = getattr(part, "function_call", None)
        if function_call is not None and getattr(function_call, "name", None):
            tool_calls.append(
                ToolInvocation(
                    id=getattr(function_call, "id", None) or f"call_{uuid.uuid4().hex[:12]}",
                    name=function_call.name,
                    arguments=dict(getattr(function_call, "args", None) or {}),
                )
            )
        elif getattr(part, "text", None):
            texts.append(part.text)
    return ModelReply(content="".join(texts), tool_calls=tool_calls)


class CompletionStream:
    """
    Lazy sequence of answer fragments.

    Every ``async for`` re-issues the request, so the stream can be consumed
    again from the start. ``cancel()`` ends the running iteration at the next
    fragment and closes the upstream stream.
    """

    def __init__(self, service: "CompletionService", system_prompt: str, messages: List[ConversationMessage]):
        self._service = service
        self._system_prompt = system_prompt
        self._messages = list(messages)
        self._cancelled = False
        self.completed = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def __aiter__(self) -> AsyncIterator[str]:
        self._cancelled = False
        self.completed = False
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[str]:
        upstream = await self._service._open_stream(self._system_prompt, self._messages)
        try:
            while True:
                if self._cancelled:
                    logger.info("Completion stream cancelled by caller")
                    return
                try:
                    chunk = await asyncio.wait_for(
                        upstream.__anext__(),
                        timeout=self._service.timeout_seconds,
                    )
                except StopAsyncIteration:
                    break
                except asyncio.TimeoutError as exc:
                    raise UpstreamServiceError("Completion stream timed out", service="completion") from exc
                except UpstreamServiceError:
                    raise
                except Exception as exc:
                    logger.error("Completion stream failed: %s", exc, exc_info=True)
                    raise UpstreamServiceError(f"Completion service failed: {exc}", service="completion") from exc
                text = getattr(chunk, "text", None)
                if text:
                    yield text
            self.completed = not self._cancelled
        finally:
            close = getattr(upstream, "aclose", None)
            if close is not None:
                await close()

    async def collect(self) -> str:
        return "".join([fragment async for fragment in self])


class CompletionService:
    """Request/response and streaming calls to the chat model."""

    def __init__(
        self,
        client: Optional[Any] = None,
        model_name: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self._client = client
        self.model_name = model_name or settings.CHAT_MODEL
        self.timeout_seconds = timeout_seconds or settings.COMPLETION_TIMEOUT_SECONDS

    @property
    def client(self):
        if self._client is None:
            self._client = genai.Client(
                vertexai=True,
                project=settings.GOOGLE_CLOUD_PROJECT,
                location=settings.GOOGLE_CLOUD_LOCATION,
            )
        return self._client

    def _config(self, system_prompt: str, tool_schemas: Optional[List[dict]] = None) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            system_instruction=system_prompt,
            temperature=settings.CHAT_TEMPERATURE,
            max_output_tokens=settings.CHAT_MAX_OUTPUT_TOKENS,
            tools=build_tools(tool_schemas),
        )

    async def complete(
        self,
        system_prompt: str,
        messages: List[ConversationMessage],
        tools: Optional[List[dict]] = None,
    ) -> ModelReply:
        try:
            response = await asyncio.wait_for(
                self.client.aio.models.generate_content(
                    model=self.model_name,
                    contents=build_contents(messages),
                    config=self._config(system_prompt, tools),
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            logger.error("Completion request timed out after %.1fs", self.timeout_seconds)
            raise UpstreamServiceError("Completion service timed out", service="completion") from exc
        except Exception as exc:
            logger.error("Completion request failed: %s", exc, exc_info=True)
            raise UpstreamServiceError(f"Completion service failed: {exc}", service="completion") from exc

        reply = parse_reply(response)
        logger.info(
            "Completion returned %d chars and %d tool calls",
            len(reply.content),
            len(reply.tool_calls),
        )
        return reply

    def stream(self, system_prompt: str, messages: List[ConversationMessage]) -> CompletionStream:
        return CompletionStream(self, system_prompt, messages)

    async def _open_stream(self, system_prompt: str, messages: List[ConversationMessage]):
        try:
            return await asyncio.wait_for(
                self.client.aio.models.generate_content_stream(
                    model=self.model_name,
                    contents=build_contents(messages),
                    config=self._config(system_prompt),
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise UpstreamServiceError("Completion service timed out", service="completion") from exc
        except Exception as exc:
            logger.error("Completion stream failed to open: %s", exc, exc_info=True)
            raise UpstreamServiceError(f"Completion service failed: {exc}", service="completion") from exc


completion_service = CompletionService()
