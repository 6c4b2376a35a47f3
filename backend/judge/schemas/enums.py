import enum


class Language(str, enum.Enum):
    java = "java"
    cpp = "cpp"
    python = "python"
    script = "script"


LANGUAGE_ALIASES = {
    "java": Language.java,
    "cpp": Language.cpp,
    "c++": Language.cpp,
    "python": Language.python,
    "python3": Language.python,
    "py": Language.python,
    "script": Language.script,
}


def parse_language(value) -> Language | None:
    if isinstance(value, Language):
        return value
    return LANGUAGE_ALIASES.get(str(value or "").strip().lower())


class ExecutorKind(str, enum.Enum):
    local = "local"
    service = "service"
    compiler_api = "compiler_api"
    simulation = "simulation"


class SubmissionStatus(str, enum.Enum):
    accepted = "Accepted"
    wrong_answer = "WrongAnswer"
    time_limit_exceeded = "TimeLimitExceeded"
    compilation_error = "CompilationError"
    runtime_error = "RuntimeError"


class SessionStatus(str, enum.Enum):
    queued = "queued"
    running = "running"
    completed = "completed"
    error = "error"


class SessionKind(str, enum.Enum):
    run = "run"
    grade = "grade"


class RunStatus(str, enum.Enum):
    completed = "Completed"
    compilation_error = "Compilation Error"
    time_limit_exceeded = "Time Limit Exceeded"
    runtime_error = "Runtime Error"
