"""Shared fixtures and test doubles."""

import json
import random

import pytest

from judge.executors.base import Executor
from judge.executors.simulation import SimulationExecutor
from judge.schemas.enums import ExecutorKind, Language
from judge.schemas.execution import ExecutionResult
from judge.services.chain import ExecutionChain
from judge.services.grader import Grader


class StubExecutor(Executor):
    """Executor that returns a canned result (or raises) and counts calls."""

    def __init__(self, kind, result=None, error=None, languages=None, outputs=None):
        self.kind = kind
        self.result = result
        self.error = error
        self.outputs = outputs
        if languages is not None:
            self.languages = frozenset(languages)
        self.calls = []

    async def execute(self, request):
        self.calls.append(request)
        if self.error is not None:
            raise self.error
        if self.outputs is not None:
            return ExecutionResult(stdout=self.outputs[request.stdin], exit_code=0, executor=self.kind)
        return self.result


class FixedRandom(random.Random):
    """PRNG whose ``random()`` always returns the same value."""

    def __init__(self, value):
        super().__init__(0)
        self.value = value

    def random(self):
        return self.value


class FakeRedis:
    """In-memory stand-in for the handful of redis commands the sessions use."""

    def __init__(self):
        self.store = {}
        self.streams = []
        self.published = []
        self.acked = []

    async def setex(self, key, ttl, value):
        self.store[key] = value

    async def get(self, key):
        return self.store.get(key)

    async def xadd(self, stream, fields, maxlen=None):
        self.streams.append((stream, fields))
        return b"1-0"

    async def publish(self, channel, data):
        self.published.append((channel, json.loads(data)))
        return 1

    async def xack(self, stream, group, msg_id):
        self.acked.append(msg_id)

    def pubsub(self):
        return FakePubSub(self)


class FakePubSub:
    """Replays whatever was published before ``listen`` is iterated."""

    def __init__(self, redis):
        self.redis = redis
        self.channels = set()
        self.closed = False

    async def subscribe(self, channel):
        self.channels.add(channel)

    async def unsubscribe(self, channel):
        self.channels.discard(channel)

    async def aclose(self):
        self.closed = True

    async def listen(self):
        yield {"type": "subscribe", "data": 1}
        for channel, event in list(self.redis.published):
            if channel in self.channels:
                yield {"type": "message", "data": json.dumps(event).encode()}


@pytest.fixture
def failing_service():
    return StubExecutor(ExecutorKind.service, error=RuntimeError("connection refused"))


@pytest.fixture
def failing_compiler_api():
    return StubExecutor(
        ExecutorKind.compiler_api,
        error=RuntimeError("rate limited"),
        languages={Language.java, Language.cpp, Language.python, Language.script},
    )


@pytest.fixture
def always_succeeds():
    """Simulation PRNG that always takes the success branch."""
    return FixedRandom(0.0)


@pytest.fixture
def simulated_chain(failing_service, failing_compiler_api, always_succeeds):
    return ExecutionChain(
        [failing_service, failing_compiler_api], SimulationExecutor(always_succeeds)
    )


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def grader_factory():
    """Build a Grader over the given executors with an always-succeeding simulation."""

    def build(*executors, concurrency=1):
        chain = ExecutionChain(list(executors), SimulationExecutor(FixedRandom(0.0)))
        return Grader(chain, default_time_limit_ms=2000, concurrency=concurrency)

    return build
