import os
import redis.asyncio as redis
from app.core.config import settings

REDIS_URL = os.environ.get("REDIS_URL", settings.redis_url)


def create_redis_client(url: str = REDIS_URL) -> redis.Redis:
    """Create a Redis client; callers own its lifecycle and must close it"""
    return redis.from_url(url, decode_responses=True)
