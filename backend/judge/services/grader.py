"""Grading: run every test case through the execution chain and score the result."""

import asyncio, logging, re, time
from typing import Any, Awaitable, Callable, Sequence
from pydantic import BaseModel, ConfigDict, ValidationError
from judge.core.errors import SubmissionValidationError
from judge.schemas.enums import Language, RunStatus, SubmissionStatus, parse_language
from judge.schemas.execution import ExecutionRequest, ExecutionResult
from judge.schemas.submission import (
    ExecutionDetails,
    ExecutionSummary,
    GradeOptions,
    SubmissionResult,
    TestCase,
    TestCaseResult,
)
from judge.services.chain import ExecutionChain

log = logging.getLogger("judge.grader")

GRADABLE_LANGUAGES = (Language.java, Language.cpp, Language.python)
TIMEOUT_PATTERN = re.compile(r"time\s*out|time limit exceeded", re.IGNORECASE)
COMPILATION_PATTERN = re.compile(r"compil", re.IGNORECASE)
WHITESPACE = re.compile(r"\s+")

# awaited with (finished, total) before the first case and after every case
ProgressCallback = Callable[[int, int], Awaitable[None]]


class ComparisonOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    ignore_whitespace: bool = False
    ignore_case: bool = False

    @classmethod
    def resolve(
        cls,
        compare_mode: str | None = None,
        ignore_whitespace: bool | None = None,
        ignore_case: bool | None = None,
    ) -> "ComparisonOptions":
        # strict unless told otherwise; explicit flags always win
        relaxed = (compare_mode or "strict").strip().lower() != "strict"
        return cls(
            ignore_whitespace=relaxed if ignore_whitespace is None else ignore_whitespace,
            ignore_case=relaxed if ignore_case is None else ignore_case,
        )


def normalize_output(text: str | None, options: ComparisonOptions) -> str:
    s = str(text or "").replace("\r\n", "\n").replace("\r", "\n").rstrip("\n")
    if options.ignore_whitespace:
        s = WHITESPACE.sub(" ", s).strip()
    if options.ignore_case:
        s = s.lower()
    return s


def derive_status(results: Sequence[TestCaseResult]) -> SubmissionStatus:
    passed = sum(1 for r in results if r.passed)
    if passed == len(results):
        return SubmissionStatus.accepted
    # NOTE: a submission with no passing test is always WrongAnswer, even when
    # every failure was a timeout or a compile error.
    if passed == 0:
        return SubmissionStatus.wrong_answer
    failures = [r.error for r in results if not r.passed and r.error]
    if any(TIMEOUT_PATTERN.search(e) for e in failures):
        return SubmissionStatus.time_limit_exceeded
    if any(COMPILATION_PATTERN.search(e) for e in failures):
        return SubmissionStatus.compilation_error
    return SubmissionStatus.wrong_answer


def classify_run(result: ExecutionResult) -> RunStatus:
    """Status of a single run, read from its stderr."""
    error = (result.stderr or "").strip()
    if not error:
        return RunStatus.completed
    if COMPILATION_PATTERN.search(error):
        return RunStatus.compilation_error
    if TIMEOUT_PATTERN.search(error):
        return RunStatus.time_limit_exceeded
    return RunStatus.runtime_error


def now_ms() -> int:
    return int(time.time() * 1000)


class Grader:
    """Turns (code, language, test cases) into one ``SubmissionResult``."""

    def __init__(
        self,
        chain: ExecutionChain,
        default_time_limit_ms: int = 8000,
        concurrency: int = 1,
    ):
        self.chain = chain
        self.default_time_limit_ms = default_time_limit_ms
        self.concurrency = max(1, concurrency)

    # ===== VALIDATION =====

    @staticmethod
    def validate(code: str, language: Any, test_cases: Any) -> tuple[Language, list[TestCase]]:
        lang = parse_language(language)
        if lang not in GRADABLE_LANGUAGES:
            raise SubmissionValidationError(
                f"Unsupported language: {getattr(language, 'value', language)}. Only Java, C++, and Python are supported."
            )
        code = code or ""
        if not code.strip():
            raise SubmissionValidationError("Empty code submission")
        if lang == Language.java and "class" not in code:
            raise SubmissionValidationError("Java code must include a class definition")
        if lang == Language.cpp and "main(" not in code:
            raise SubmissionValidationError("C++ code must include a main function")

        if not isinstance(test_cases, (list, tuple)) or not test_cases:
            raise SubmissionValidationError("No test cases provided for execution")
        cases = []
        for tc in test_cases:
            if isinstance(tc, TestCase):
                cases.append(tc)
                continue
            try:
                cases.append(TestCase.model_validate(tc))
            except ValidationError as e:
                raise SubmissionValidationError(
                    "Invalid test case: input and expected_output are required"
                ) from e
        return lang, cases

    # ===== GRADING =====

    async def run_tests(
        self,
        code: str,
        language: Any,
        test_cases: Any,
        options: GradeOptions | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> SubmissionResult:
        """Grade a submission. Raises ``SubmissionValidationError`` before running
        anything if the request is malformed; execution failures never raise."""
        options = options or GradeOptions()
        lang, cases = self.validate(code, language, test_cases)
        comparison = ComparisonOptions.resolve(
            options.compare_mode, options.ignore_whitespace, options.ignore_case
        )
        time_limit = options.time_limit or self.default_time_limit_ms
        log.info(
            "grading %s submission with %d test cases (time_limit=%dms)",
            lang.value,
            len(cases),
            time_limit,
        )

        total = len(cases)
        if on_progress:
            await on_progress(0, total)
        if self.concurrency == 1:
            results = []
            for i, tc in enumerate(cases):
                results.append(await self._run_case(i, tc, code, lang, time_limit, comparison))
                if on_progress:
                    await on_progress(i + 1, total)
        else:
            sem = asyncio.Semaphore(self.concurrency)
            finished = 0

            async def bounded(i, tc):
                nonlocal finished
                async with sem:
                    result = await self._run_case(i, tc, code, lang, time_limit, comparison)
                finished += 1
                if on_progress:
                    await on_progress(finished, total)
                return result

            results = list(await asyncio.gather(*(bounded(i, tc) for i, tc in enumerate(cases))))

        passed = sum(1 for r in results if r.passed)
        status = derive_status(results)
        score = (100 * passed) // total
        log.info("graded %s: %d/%d passed (%d%%) status=%s", lang.value, passed, total, score, status.value)
        return SubmissionResult(
            status=status,
            tests_passed=passed,
            total_tests=total,
            results=results,
            runtime=results[0].runtime,
            memory=results[0].memory,
            score=score,
            execution_summary=ExecutionSummary(
                language=lang.value,
                total_test_cases=total,
                passed_test_cases=passed,
                failed_test_cases=total - passed,
                execution_time=now_ms(),
                simulated=any(r.simulated for r in results),
            ),
        )

    async def _run_case(
        self,
        index: int,
        tc: TestCase,
        code: str,
        lang: Language,
        time_limit: int,
        comparison: ComparisonOptions,
    ) -> TestCaseResult:
        request = ExecutionRequest(code=code, language=lang, stdin=tc.input, timeout_ms=time_limit)
        try:
            res = await self.chain.execute(request)
        except Exception as e:
            log.debug("test case %d execution error: %s", index + 1, e)
            return TestCaseResult(
                input=tc.input,
                expected_output=tc.expected_output,
                actual_output="",
                passed=False,
                runtime="0ms",
                memory="0MB",
                error=str(e),
                hidden=tc.hidden,
                execution_details=ExecutionDetails(exit_code=-1, stderr=str(e), stdout=""),
            )

        passed = normalize_output(res.stdout, comparison) == normalize_output(
            tc.expected_output, comparison
        )
        log.debug("test case %d %s", index + 1, "passed" if passed else "failed")
        return TestCaseResult(
            input=tc.input,
            expected_output=tc.expected_output,
            actual_output=res.stdout,
            passed=passed,
            runtime=res.runtime or "0ms",
            memory=res.memory or "0MB",
            error=res.stderr,
            hidden=tc.hidden,
            simulated=res.simulated,
            execution_details=ExecutionDetails(
                exit_code=res.exit_code, stderr=res.stderr, stdout=res.stdout
            ),
        )

    async def grade(
        self,
        code: str,
        language: Any,
        test_cases: Any,
        options: GradeOptions | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> SubmissionResult:
        """Like ``run_tests`` but never raises: any failure becomes a
        ``RuntimeError`` result with a zero score and the error message."""
        try:
            return await self.run_tests(code, language, test_cases, options, on_progress)
        except Exception as e:
            log.warning("submission failed before grading completed: %s", e)
            total = len(test_cases) if isinstance(test_cases, (list, tuple)) else 0
            return SubmissionResult(
                status=SubmissionStatus.runtime_error,
                tests_passed=0,
                total_tests=total,
                results=[],
                runtime="0ms",
                memory="0MB",
                score=0,
                error=str(e),
                execution_summary=ExecutionSummary(
                    language=str(getattr(language, "value", language) or "unknown").lower(),
                    total_test_cases=total,
                    passed_test_cases=0,
                    failed_test_cases=total,
                    execution_time=now_ms(),
                ),
            )
