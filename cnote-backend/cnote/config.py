import os
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 24 hours (1440 minutes)
    ALGORITHM: str = "HS256"
    JWT_SECRET_KEY: str = os.getenv('JWT_SECRET_KEY', 'change-me')  # should be kept secret

    # Vertex AI
    GOOGLE_CLOUD_PROJECT: Optional[str] = None
    GOOGLE_CLOUD_LOCATION: Optional[str] = None

    # Embeddings
    EMBEDDING_MODEL: str = "text-embedding-005"
    EMBEDDING_DIMENSION: int = 768  # text-embedding-005 output size
    EMBEDDING_BATCH_SIZE: int = 10
    EMBEDDING_MAX_RETRIES: int = 3
    EMBEDDING_BACKOFF_BASE_SECONDS: float = 1.0
    EMBEDDING_BACKOFF_MAX_SECONDS: float = 16.0
    EMBEDDING_BACKOFF_JITTER_SECONDS: float = 0.5
    EMBEDDING_TIMEOUT_SECONDS: float = 30.0

    # Chunking
    CHUNK_SIZE: int = 500
    CHUNK_OVERLAP: int = 50

    # Retrieval
    SEARCH_TOP_K: int = 3
    SEARCH_MIN_SIMILARITY: float = 0.5

    # Chat
    CHAT_MODEL: str = "gemini-2.5-flash"
    CHAT_TEMPERATURE: float = 0.7
    CHAT_MAX_OUTPUT_TOKENS: int = 2000
    COMPLETION_TIMEOUT_SECONDS: float = 60.0
    CHAT_HISTORY_LIMIT: int = 10
    CHAT_MAX_TOOL_ITERATIONS: int = 5
    TOOL_TIMEOUT_SECONDS: float = 15.0

    # Background re-index
    REINDEX_MAX_TRIES: int = 3
    REINDEX_RETRY_DELAY_SECONDS: int = 10

settings = Settings()
