"""
Embedding service for generating vector embeddings using Google's text-embedding-005 model.
"""
import asyncio
import logging
import random
from typing import Any, List, Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from cnote.common.exceptions import UpstreamServiceError
from cnote.config import settings

logger = logging.getLogger(__name__)

DOCUMENT_TASK_TYPE = "RETRIEVAL_DOCUMENT"
QUERY_TASK_TYPE = "RETRIEVAL_QUERY"


def _is_retryable_error(exc: Exception) -> bool:
    if isinstance(exc, genai_errors.APIError) and getattr(exc, "code", None) == 429:
        return True
    text = str(exc).lower()
    return "429" in text or "resource_exhausted" in text or "quota" in text


def _get_backoff_seconds(attempt: int) -> float:
    base = settings.EMBEDDING_BACKOFF_BASE_SECONDS * (2 ** attempt)
    backoff = min(settings.EMBEDDING_BACKOFF_MAX_SECONDS, base)
    if settings.EMBEDDING_BACKOFF_JITTER_SECONDS > 0:
        backoff += random.uniform(0.0, settings.EMBEDDING_BACKOFF_JITTER_SECONDS)
    return backoff


def calculate_cosine_similarity(embedding1: List[float], embedding2: List[float]) -> float:
    """
    Calculate cosine similarity between two embeddings.

    Args:
        embedding1: First embedding vector
        embedding2: Second embedding vector

    Returns:
        Cosine similarity score between -1 and 1
        Returns 0.0 for empty, mismatched or zero-magnitude vectors
    """
    embedding1 = list(embedding1) if embedding1 is not None else []
    embedding2 = list(embedding2) if embedding2 is not None else []
    if len(embedding1) == 0 or len(embedding2) == 0:
        return 0.0

    if len(embedding1) != len(embedding2):
        logger.error(
            "Embedding dimensions don't match: %d vs %d",
            len(embedding1),
            len(embedding2),
        )
        return 0.0

    dot_product = sum(a * b for a, b in zip(embedding1, embedding2))
    magnitude1 = sum(a * a for a in embedding1) ** 0.5
    magnitude2 = sum(b * b for b in embedding2) ** 0.5

    if magnitude1 == 0 or magnitude2 == 0:
        return 0.0

    return float(dot_product / (magnitude1 * magnitude2))


class EmbeddingService:
    """
    Batched access to the external embedding model.

    Vectors always come back aligned with the input order; any batch that
    cannot be fully mapped fails the whole call and partial results are
    discarded.
    """

    def __init__(
        self,
        client: Optional[Any] = None,
        model_name: Optional[str] = None,
        dimension: Optional[int] = None,
        batch_size: Optional[int] = None,
        max_retries: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self._client = client
        self.model_name = model_name or settings.EMBEDDING_MODEL
        self.dimension = dimension or settings.EMBEDDING_DIMENSION
        self.batch_size = max(1, batch_size or settings.EMBEDDING_BATCH_SIZE)
        self.max_retries = settings.EMBEDDING_MAX_RETRIES if max_retries is None else max(0, max_retries)
        self.timeout_seconds = timeout_seconds or settings.EMBEDDING_TIMEOUT_SECONDS

    @property
    def client(self):
        if self._client is None:
            self._client = genai.Client(
                vertexai=True,
                project=settings.GOOGLE_CLOUD_PROJECT,
                location=settings.GOOGLE_CLOUD_LOCATION,
            )
        return self._client

    async def embed_many(
        self,
        texts: List[str],
        task_type: str = DOCUMENT_TASK_TYPE,
    ) -> List[List[float]]:
        """
        Embed texts in batches of ``batch_size``.

        Raises:
            UpstreamServiceError: On provider failure, timeout or a response
                that cannot be mapped back onto the inputs
        """
        if not texts:
            return []

        vectors: List[List[float]] = []
        batch_count = (len(texts) + self.batch_size - 1) // self.batch_size
        for batch_number, start in enumerate(range(0, len(texts), self.batch_size), start=1):
            batch = texts[start:start + self.batch_size]
            vectors.extend(await self._embed_batch(batch, task_type, batch_number, batch_count))

        dimensions = {len(vector) for vector in vectors}
        if len(dimensions) != 1 or self.dimension not in dimensions:
            raise UpstreamServiceError(
                "Embedding service returned vectors of unexpected dimension",
                service="embedding",
                details={"expected": self.dimension, "received": sorted(dimensions)},
            )

        logger.info("Generated %d embeddings in %d batches (task=%s)", len(vectors), batch_count, task_type)
        return vectors

    async def embed_query(self, text: str) -> List[float]:
        """Embed a single search query."""
        vectors = await self.embed_many([text], task_type=QUERY_TASK_TYPE)
        return vectors[0]

    async def _embed_batch(
        self,
        batch: List[str],
        task_type: str,
        batch_number: int,
        batch_count: int,
    ) -> List[List[float]]:
        response = await self._embed_content_with_retry(batch, task_type)
        items = list(getattr(response, "embeddings", None) or [])

        if not items:
            raise UpstreamServiceError(
                f"Embedding batch {batch_number}/{batch_count} returned no embeddings",
                service="embedding",
            )
        if len(items) != len(batch):
            raise UpstreamServiceError(
                f"Embedding batch {batch_number}/{batch_count} size mismatch: "
                f"expected {len(batch)}, got {len(items)}",
                service="embedding",
            )

        ordered: List[Optional[List[float]]] = [None] * len(batch)
        for position, item in enumerate(items):
            index = getattr(item, "index", None)
            if index is None:
                index = position
            if not 0 <= index < len(batch) or ordered[index] is not None:
                raise UpstreamServiceError(
                    f"Embedding batch {batch_number}/{batch_count} returned invalid index {index}",
                    service="embedding",
                )
            values = getattr(item, "values", None)
            if not values:
                raise UpstreamServiceError(
                    f"Embedding batch {batch_number}/{batch_count} returned an empty vector",
                    service="embedding",
                )
            ordered[index] = [float(value) for value in values]

        return ordered

    async def _embed_content_with_retry(self, contents: List[str], task_type: str):
        for attempt in range(self.max_retries + 1):
            try:
                return await asyncio.wait_for(
                    self.client.aio.models.embed_content(
                        model=self.model_name,
                        contents=contents,
                        config=types.EmbedContentConfig(
                            task_type=task_type,
                            output_dimensionality=self.dimension,
                        ),
                    ),
                    timeout=self.timeout_seconds,
                )
            except asyncio.TimeoutError as exc:
                logger.error("Embedding request timed out after %.1fs", self.timeout_seconds)
                raise UpstreamServiceError(
                    "Embedding service timed out",
                    service="embedding",
                ) from exc
            except Exception as exc:
                if not _is_retryable_error(exc) or attempt >= self.max_retries:
                    logger.error("Embedding request failed: %s", exc, exc_info=True)
                    raise UpstreamServiceError(
                        f"Embedding service failed: {exc}",
                        service="embedding",
                    ) from exc
                sleep_time = _get_backoff_seconds(attempt)
                logger.warning(
                    "Embedding request failed with retryable error: %s. Retrying in %.2fs (attempt %d/%d)",
                    exc,
                    sleep_time,
                    attempt + 1,
                    self.max_retries,
                )
                await asyncio.sleep(sleep_time)


embedding_service = EmbeddingService()
