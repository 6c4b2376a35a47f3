import logging, random
from typing import Sequence
from judge.core.config import Settings
from judge.core.errors import SubmissionValidationError
from judge.executors.base import Executor
from judge.executors.compiler_api import CompilerApiExecutor
from judge.executors.local import LocalExecutor
from judge.executors.service import ServiceExecutor
from judge.executors.simulation import SimulationExecutor
from judge.schemas.enums import parse_language
from judge.schemas.execution import ExecutionRequest, ExecutionResult

log = logging.getLogger("judge.chain")


class ExecutionChain:
    """Tries executors in a fixed order and falls back to simulation.

    Any exception from a real executor is logged and the next one is tried.
    The simulation fallback is the terminal step: whatever it returns or
    raises goes straight back to the caller.
    """

    def __init__(
        self,
        executors: Sequence[Executor],
        fallback: SimulationExecutor,
        default_timeout_ms: int = 8000,
    ):
        self.executors = list(executors)
        self.fallback = fallback
        self.default_timeout_ms = default_timeout_ms

    async def execute(self, request: ExecutionRequest) -> ExecutionResult:
        for executor in self.executors:
            if not executor.supports(request.language):
                continue
            try:
                return await executor.execute(request)
            except Exception as e:
                log.warning(
                    "%s executor failed for %s: %s",
                    executor.kind.value,
                    request.language.value,
                    e,
                    extra={"executor": executor.kind.value, "language": request.language.value},
                )
        log.warning("all executors failed for %s, simulating", request.language.value)
        return self.fallback.simulate(request)

    async def execute_best_effort(
        self, code: str, language, stdin: str = "", timeout: int | None = None
    ) -> ExecutionResult:
        lang = parse_language(language)
        if lang is None:
            raise SubmissionValidationError(f"Unsupported language: {language}")
        request = ExecutionRequest(
            code=code,
            language=lang,
            stdin=stdin or "",
            timeout_ms=timeout or self.default_timeout_ms,
        )
        return await self.execute(request)


def build_chain(settings: Settings) -> ExecutionChain:
    rng = random.Random(settings.SIMULATION_SEED)
    return ExecutionChain(
        [
            LocalExecutor(memory_limit_mb=settings.SANDBOX_MEMORY_MB),
            ServiceExecutor(settings.executor_base_url),
            CompilerApiExecutor(
                settings.COMPILER_API_URL,
                api_key=settings.COMPILER_API_KEY,
                user_agent=settings.COMPILER_API_USER_AGENT,
                max_timeout_s=settings.COMPILER_API_MAX_TIMEOUT_S,
            ),
        ],
        SimulationExecutor(rng),
        default_timeout_ms=settings.DEFAULT_TIME_LIMIT_MS,
    )
