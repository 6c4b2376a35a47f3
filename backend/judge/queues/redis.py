"""Redis connection and the key layout shared by the API and the worker."""

from redis import asyncio as aioredis
from contextlib import asynccontextmanager
from judge.core.config import get_settings

settings = get_settings()

RUN_STREAM = settings.RUN_STREAM
RUN_GROUP = settings.RUN_GROUP
STREAM_MAXLEN = 1000
EVENT_PREFIX = settings.EVENT_CHANNEL_PREFIX
SESSION_PREFIX = settings.SESSION_PREFIX
SESSION_TTL_SECONDS = settings.SESSION_TTL_SECONDS


def connect(url: str | None = None) -> aioredis.Redis:
    # payloads are JSON bytes encoded by the callers
    return aioredis.from_url(url or settings.REDIS_URL, decode_responses=False)


@asynccontextmanager
async def get_redis(url: str | None = None):
    r = connect(url)
    try:
        yield r
    finally:
        await r.aclose()


def session_key(session_id: str) -> str:
    return f"{SESSION_PREFIX}{session_id}"


def event_channel(session_id: str) -> str:
    return f"{EVENT_PREFIX}{session_id}"
