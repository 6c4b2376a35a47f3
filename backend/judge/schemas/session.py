from pydantic import BaseModel, Field
from judge.schemas.enums import SessionKind, SessionStatus


class RunCreate(BaseModel):
    code: str
    language: str = Field(default="python")
    input: str = ""
    expected_output: str | None = None
    time_limit: int | None = Field(default=None, gt=0)  # ms


class RunOut(BaseModel):
    stdout: str
    stderr: str | None = None
    exit_code: int | None = None
    runtime: str
    memory: str
    simulated: bool = False
    executor: str | None = None
    status: str | None = None
    passed: bool | None = None
    error: str | None = None


class SessionOut(BaseModel):
    session_id: str
    kind: SessionKind
    status: SessionStatus
    language: str
    result: dict | None = None
    error: str | None = None
    created_at: int | None = None
    completed_at: int | None = None
