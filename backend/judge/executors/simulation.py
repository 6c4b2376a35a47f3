"""Network-independent heuristic fallback.

Used only when every real backend has failed. It does not run the code: it
checks a few surface features, rolls a quality-weighted die and guesses the
output from keywords in the source. Results are flagged ``simulated=True``.
"""

import logging, random, re
from judge.core.errors import SimulationError
from judge.executors.base import Executor
from judge.schemas.enums import ExecutorKind, Language
from judge.schemas.execution import ExecutionRequest, ExecutionResult

log = logging.getLogger("judge.executor.simulation")

ENTRY_POINTS = {
    Language.python: re.compile(
        r"print\s*\(|if\s+__name__\s*==\s*['\"]__main__['\"]|def\s+main"
    ),
    Language.java: re.compile(
        r"public\s+static\s+void\s+main\s*\(\s*String\s*\[\s*\]\s*\w+\s*\)"
    ),
    Language.cpp: re.compile(r"int\s+main\s*\(\s*\)|cout\s*<<"),
}

FAILURES = (
    "Runtime Error: Null pointer exception",
    "Runtime Error: Array index out of bounds",
    "Runtime Error: Division by zero",
    "Time Limit Exceeded: Code took too long to execute",
    "Memory Limit Exceeded: Code used too much memory",
)

BASE_QUALITY = 0.7
LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def has_entry_point(code: str, language: Language) -> bool:
    pattern = ENTRY_POINTS.get(language)
    return pattern is None or bool(pattern.search(code))


def check_basic_syntax(code: str, language: Language) -> str | None:
    """Return the first superficial syntax problem found, or None."""
    if language == Language.python:
        lines = code.split("\n")
        for i, line in enumerate(lines[:-1]):
            if line.strip().endswith(":"):
                nxt = lines[i + 1]
                if nxt.strip() and not nxt.startswith((" ", "\t")):
                    return f"Indentation error after line {i + 1}"
    elif language == Language.java:
        if "class" not in code:
            return "Missing class declaration"
        if "{" not in code:
            return "Missing opening brace for class"
    elif language == Language.cpp:
        if "#include" not in code:
            return "Missing include statements"
    return None


def analyze_code_quality(code: str, language: Language) -> float:
    quality = BASE_QUALITY
    if has_entry_point(code, language):
        quality += 0.2
    if 50 < len(code.strip()) < 2000:
        quality += 0.1
    if "for" in code or "while" in code or "if" in code:
        quality += 0.1
    return min(1.0, round(quality, 2))


def parse_int(line: str | None) -> int | None:
    m = LEADING_INT.match(line or "")
    return int(m.group(1)) if m else None


def generate_output(stdin: str, code: str) -> str:
    """Guess a plausible answer from keywords in the code and numbers in the input."""
    if not stdin:
        return ""
    lines = [line for line in stdin.split("\n") if line.strip()]
    if not lines:
        return ""
    lowered = code.lower()

    if "sum" in lowered or "+" in code:
        numbers = [n for n in map(parse_int, lines) if n is not None]
        if len(numbers) >= 2:
            return str(numbers[0] + numbers[1])

    if "factorial" in lowered:
        n = parse_int(lines[0])
        if n is not None and 0 <= n <= 10:
            result = 1
            for i in range(2, n + 1):
                result *= i
            return str(result)

    if "fibonacci" in lowered:
        n = parse_int(lines[0])
        if n is not None and 0 <= n <= 20:
            a, b = 0, 1
            for _ in range(n):
                a, b = b, a + b
            return str(a)

    if "*" in code or "/" in code or "%" in code:
        x = parse_int(lines[0])
        y = parse_int(lines[1]) if len(lines) > 1 else None
        if x is not None and y is not None:
            if "*" in code:
                return str(x * y)
            if y != 0:
                if "/" in code:
                    return str(x // y)
                rem = abs(x) % abs(y)
                return str(-rem if x < 0 else rem)  # sign follows the dividend

    return lines[0]


class SimulationExecutor(Executor):
    kind = ExecutorKind.simulation

    def __init__(self, rng: random.Random | None = None):
        self.rng = rng or random.Random()

    def simulate(self, request: ExecutionRequest) -> ExecutionResult:
        code, language = request.code, request.language
        log.info("simulating execution for %s", language.value)

        if not code or not code.strip():
            raise SimulationError("Empty code submission - cannot simulate execution")
        if not has_entry_point(code, language):
            raise SimulationError(f"Code must include a main function for {language.value}")
        problem = check_basic_syntax(code, language)
        if problem:
            raise SimulationError(f"Compilation Error: {problem}")

        quality = analyze_code_quality(code, language)
        if self.rng.random() >= quality:
            failure = self.rng.choice(FAILURES)
            log.info("simulated failure: %s", failure)
            raise SimulationError(failure)

        return ExecutionResult(
            stdout=generate_output(request.stdin, code),
            stderr=None,
            exit_code=0,
            runtime=f"{self.rng.randint(100, 399)}ms",
            memory=f"{self.rng.uniform(20, 70):.1f}MB",
            simulated=True,
            executor=self.kind,
        )

    async def execute(self, request: ExecutionRequest) -> ExecutionResult:
        return self.simulate(request)
