"""Exception taxonomy for the execution orchestrator.

Validation errors reject a request before anything runs. Executor errors are
recovered by the execution chain. Simulation errors come from the terminal
fallback and are recorded against the test case that triggered them.
"""


class JudgeError(Exception):
    """Base exception for all orchestrator errors."""


class SubmissionValidationError(JudgeError):
    """The submission request itself is malformed."""


class ExecutorError(JudgeError):
    """An execution backend could not produce a result."""

    def __init__(self, message: str, executor: str | None = None):
        super().__init__(message)
        self.executor = executor


class RemoteExecutorError(ExecutorError):
    """A remote backend answered with a non-success HTTP status."""

    def __init__(
        self,
        message: str,
        executor: str | None = None,
        status_code: int | None = None,
        body: str | None = None,
    ):
        super().__init__(message, executor)
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code:
            return f"{base} (Status Code: {self.status_code})"
        return base


class MalformedResponseError(ExecutorError):
    """A remote backend answered, but not with a usable result."""


class CompilerApiError(RemoteExecutorError):
    """Failure talking to the third-party compiler API, tagged with a cause."""

    def __init__(
        self,
        message: str,
        cause: str = "unknown",
        status_code: int | None = None,
        body: str | None = None,
    ):
        super().__init__(message, "compiler_api", status_code, body)
        self.cause = cause


class SimulationError(JudgeError):
    """The simulation fallback rejected the code or simulated a failure."""
