# backend/judge/api/deps.py
from functools import lru_cache
from judge.core.config import get_settings
from judge.queues.redis import get_redis
from judge.services.chain import ExecutionChain, build_chain
from judge.services.grader import Grader


@lru_cache
def get_chain() -> ExecutionChain:
    return build_chain(get_settings())


@lru_cache
def get_grader() -> Grader:
    settings = get_settings()
    return Grader(
        get_chain(),
        default_time_limit_ms=settings.DEFAULT_TIME_LIMIT_MS,
        concurrency=settings.GRADE_CONCURRENCY,
    )


async def get_queue():
    async with get_redis() as r:
        yield r
