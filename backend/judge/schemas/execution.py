from pydantic import BaseModel, ConfigDict, Field
from judge.schemas.enums import ExecutorKind, Language


class ExecutionRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    language: Language
    stdin: str = ""
    timeout_ms: int = Field(default=8000, gt=0)


class ExecutionResult(BaseModel):
    """Backend-agnostic result every executor must produce."""

    stdout: str = ""
    stderr: str | None = None
    exit_code: int | None = None
    runtime: str = "0ms"
    memory: str = "0MB"
    simulated: bool = False
    executor: ExecutorKind | None = None
