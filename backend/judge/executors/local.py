import asyncio, json, logging, signal, sys, time
from pathlib import Path
from judge.executors.base import Executor, elapsed_ms
from judge.schemas.enums import ExecutorKind, Language
from judge.schemas.execution import ExecutionRequest, ExecutionResult

WORKER_PATH = Path(__file__).with_name("sandbox_worker.py")
ISOLATION_FLAGS = ["-I", "-B"]

log = logging.getLogger("judge.executor.local")


class LocalExecutor(Executor):
    """Runs script-language source in a child interpreter with no network access.

    The child (``sandbox_worker.py``) only sees restricted builtins, a captured
    ``print``/``console`` and line-by-line stdin readers; imports are denied.
    Every failure, including the wall-clock timeout, ends up in ``stderr``;
    this executor never raises.
    """

    kind = ExecutorKind.local
    languages = frozenset({Language.script})

    def __init__(self, memory_limit_mb: int = 256, python_executable: str | None = None):
        self.memory_limit_mb = memory_limit_mb
        self.python_executable = python_executable or sys.executable

    async def execute(self, request: ExecutionRequest) -> ExecutionResult:
        started = time.perf_counter()
        payload = json.dumps(
            {
                "code": request.code,
                "stdin": request.stdin,
                "timeout_ms": request.timeout_ms,
                "memory_mb": self.memory_limit_mb,
            }
        ).encode()
        try:
            proc = await asyncio.create_subprocess_exec(
                self.python_executable,
                *ISOLATION_FLAGS,
                str(WORKER_PATH),
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            log.error("sandbox interpreter unavailable: %s", e)
            return self._failure(f"Sandbox unavailable: {e}", started)

        try:
            out, err = await asyncio.wait_for(
                proc.communicate(payload), timeout=request.timeout_ms / 1000
            )
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            log.info("sandbox killed after %dms", request.timeout_ms)
            return self._failure(
                f"Execution timeout: script exceeded {request.timeout_ms}ms", started
            )

        try:
            res = json.loads(out.decode("utf-8", errors="replace"))
        except ValueError:
            res = None
        if not isinstance(res, dict):
            return self._failure(self._describe_crash(proc.returncode, err), started)

        stderr = res.get("stderr") or None
        return ExecutionResult(
            stdout="" if stderr else str(res.get("stdout") or ""),
            stderr=stderr,
            exit_code=res.get("exit_code", 1 if stderr else 0),
            runtime=f"{elapsed_ms(started)}ms",
            memory="n/a",
            executor=self.kind,
        )

    def _failure(self, message: str, started: float) -> ExecutionResult:
        return ExecutionResult(
            stdout="",
            stderr=message,
            exit_code=1,
            runtime=f"{elapsed_ms(started)}ms",
            memory="n/a",
            executor=self.kind,
        )

    @staticmethod
    def _describe_crash(returncode: int | None, err: bytes) -> str:
        sigxcpu = getattr(signal, "SIGXCPU", None)
        if returncode is not None and sigxcpu is not None and returncode == -sigxcpu:
            return "Execution timeout: CPU time limit exceeded"
        detail = err.decode("utf-8", errors="replace").strip()[:200]
        if returncode is not None and returncode < 0:
            return f"Sandbox terminated by signal {-returncode}"
        return f"Sandbox error: {detail or 'no output'}"
