"""Fakes for the external model services used across the test suite."""

import asyncio
from types import SimpleNamespace
from typing import Callable, List, Optional

from cnote.config import settings
from cnote.schemas.chat import ModelReply, ToolInvocation


def make_vector(*values, dimension: Optional[int] = None) -> List[float]:
    """Pad the leading components with zeros up to the embedding dimension."""
    dimension = dimension or settings.EMBEDDING_DIMENSION
    vector = [float(v) for v in values]
    return vector + [0.0] * (dimension - len(vector))


class FakeEmbedModels:
    """Stands in for ``client.aio.models`` of google-genai for embeddings."""

    def __init__(
        self,
        vector_fn: Callable[[str], List[float]],
        reverse: bool = False,
        with_index: bool = True,
        errors: Optional[list] = None,
        delay: float = 0.0,
        drop_last: bool = False,
        duplicate_index: bool = False,
    ):
        self.vector_fn = vector_fn
        self.reverse = reverse
        self.with_index = with_index
        self.errors = list(errors or [])
        self.delay = delay
        self.drop_last = drop_last
        self.duplicate_index = duplicate_index
        self.calls = []

    async def embed_content(self, model, contents, config):
        self.calls.append({"model": model, "contents": list(contents), "task_type": config.task_type})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.errors:
            raise self.errors.pop(0)
        items = []
        for position, text in enumerate(contents):
            item = SimpleNamespace(values=self.vector_fn(text))
            if self.with_index:
                item.index = 0 if self.duplicate_index else position
            items.append(item)
        if self.drop_last:
            items = items[:-1]
        if self.reverse:
            items.reverse()
        return SimpleNamespace(embeddings=items)


class FakeGenaiClient:
    def __init__(self, models):
        self.aio = SimpleNamespace(models=models)


class FakeEmbedder:
    """Embedding service double: every query embeds to a fixed vector."""

    def __init__(self, query_vector: List[float], document_vector: Optional[List[float]] = None):
        self.query_vector = query_vector
        self.document_vector = document_vector or query_vector
        self.queries = []
        self.documents = []

    async def embed_query(self, text: str) -> List[float]:
        self.queries.append(text)
        return list(self.query_vector)

    async def embed_many(self, texts, task_type: str = "RETRIEVAL_DOCUMENT"):
        self.documents.append(list(texts))
        return [list(self.document_vector) for _ in texts]


class FailingEmbedder(FakeEmbedder):
    def __init__(self, error: Exception):
        super().__init__(make_vector(1.0))
        self.error = error

    async def embed_many(self, texts, task_type: str = "RETRIEVAL_DOCUMENT"):
        raise self.error


def tool_call(name: str, call_id: str = "call_1", **arguments) -> ToolInvocation:
    return ToolInvocation(id=call_id, name=name, arguments=arguments)


class ScriptedCompletion:
    """
    Completion service double that replays a fixed list of replies.

    When the script runs out the last reply repeats.
    """

    def __init__(self, replies: List[ModelReply], stream_fragments: Optional[List[str]] = None):
        self.replies = list(replies)
        self.stream_fragments = stream_fragments or []
        self.calls = []

    async def complete(self, system_prompt, messages, tools=None) -> ModelReply:
        self.calls.append({"system_prompt": system_prompt, "messages": list(messages), "tools": tools})
        index = min(len(self.calls) - 1, len(self.replies) - 1)
        return self.replies[index]


def genai_response(text: str = "", function_calls: Optional[list] = None):
    """Build an object shaped like a google-genai GenerateContentResponse."""
    parts = []
    if text:
        parts.append(SimpleNamespace(text=text, function_call=None))
    for call in function_calls or []:
        parts.append(SimpleNamespace(text=None, function_call=SimpleNamespace(**call)))
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))])


class FakeChatModels:
    """Stands in for ``client.aio.models`` of google-genai for chat."""

    def __init__(self, responses=None, fragments=None, error: Optional[Exception] = None, delay: float = 0.0):
        self.responses = list(responses or [])
        self.fragments = list(fragments or [])
        self.error = error
        self.delay = delay
        self.calls = []
        self.stream_calls = 0
        self.closed_streams = 0

    async def generate_content(self, model, contents, config):
        self.calls.append({"model": model, "contents": contents, "config": config})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.responses.pop(0)

    async def generate_content_stream(self, model, contents, config):
        self.stream_calls += 1
        fragments = list(self.fragments)
        models = self

        async def _stream():
            try:
                for fragment in fragments:
                    yield SimpleNamespace(text=fragment)
            finally:
                models.closed_streams += 1

        return _stream()


class FakeArqPool:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.jobs = []

    async def enqueue_job(self, function, *args, **kwargs):
        if self.error:
            raise self.error
        self.jobs.append({"function": function, "args": args, "kwargs": kwargs})
        return SimpleNamespace(job_id=kwargs.get("_job_id"))
