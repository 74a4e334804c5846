import os
from typing import Optional

from arq.connections import RedisSettings


def get_redis_settings() -> RedisSettings:
    """Get Redis settings for the re-index queue from environment variables."""
    password: Optional[str] = os.getenv("REDIS_PASSWORD") or None
    return RedisSettings(
        host=os.getenv("REDIS_HOST", "localhost"),
        port=int(os.getenv("REDIS_PORT", "6379")),
        database=int(os.getenv("REDIS_DB", "0")),
        password=password,
    )


REDIS_SETTINGS = get_redis_settings()
