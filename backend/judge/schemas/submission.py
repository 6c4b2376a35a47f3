from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from judge.schemas.enums import SubmissionStatus


class TestCase(BaseModel):
    model_config = ConfigDict(frozen=True)

    input: str
    expected_output: str = Field(
        validation_alias=AliasChoices("expected_output", "expectedOutput")
    )
    hidden: bool = False


class GradeOptions(BaseModel):
    compare_mode: str | None = None
    ignore_whitespace: bool | None = None
    ignore_case: bool | None = None
    time_limit: int | None = Field(default=None, gt=0)  # ms


class ExecutionDetails(BaseModel):
    exit_code: int | None = None
    stderr: str | None = None
    stdout: str | None = None


class TestCaseResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    input: str
    expected_output: str
    actual_output: str
    passed: bool
    runtime: str
    memory: str
    error: str | None = None
    hidden: bool = False
    simulated: bool = False
    execution_details: ExecutionDetails


class ExecutionSummary(BaseModel):
    language: str
    total_test_cases: int
    passed_test_cases: int
    failed_test_cases: int
    execution_time: int  # epoch ms
    simulated: bool = False


class SubmissionResult(BaseModel):
    status: SubmissionStatus
    tests_passed: int
    total_tests: int
    results: list[TestCaseResult]
    runtime: str
    memory: str
    score: int = Field(ge=0, le=100)
    error: str | None = None
    execution_summary: ExecutionSummary


class GradeRequest(BaseModel):
    code: str
    language: str
    test_cases: list[dict] = Field(
        validation_alias=AliasChoices("test_cases", "testCases")
    )
    options: GradeOptions | None = None
