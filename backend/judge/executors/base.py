import time
from judge.schemas.enums import ExecutorKind, Language
from judge.schemas.execution import ExecutionRequest, ExecutionResult


class Executor:
    """One execution backend in the chain.

    Subclasses set ``kind`` and ``languages`` and implement ``execute``.
    ``execute`` either returns a canonical ``ExecutionResult`` or raises.
    """

    kind: ExecutorKind
    languages: frozenset[Language] = frozenset(Language)

    def supports(self, language: Language) -> bool:
        return language in self.languages

    async def execute(self, request: ExecutionRequest) -> ExecutionResult:
        raise NotImplementedError


def elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def format_runtime(value, fallback_ms: int) -> str:
    """Render a backend-reported runtime as a display string."""
    if value is None or value == "":
        return f"{fallback_ms}ms"
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"{round(value)}ms"
    return str(value)


def format_memory(value, unit: str) -> str:
    if value is None or value == "":
        return "n/a"
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"{round(value)}{unit}"
    return str(value)
