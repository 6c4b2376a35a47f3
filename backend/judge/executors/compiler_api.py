import asyncio, logging, time
import httpx
from judge.core.errors import CompilerApiError, MalformedResponseError
from judge.executors.base import Executor, elapsed_ms, format_memory, format_runtime
from judge.schemas.enums import ExecutorKind, Language
from judge.schemas.execution import ExecutionRequest, ExecutionResult

log = logging.getLogger("judge.executor.compiler_api")

# internal language -> provider language / version index
LANGUAGE_MAP = {
    Language.java: {"language": "java", "versionIndex": "4"},
    Language.cpp: {"language": "cpp17", "versionIndex": "5"},
    Language.python: {"language": "python3", "versionIndex": "3"},
    Language.script: {"language": "python3", "versionIndex": "3"},
}


def classify_status(status_code: int) -> str:
    if status_code in (400, 422):
        return "request_format"
    if status_code == 429:
        return "rate_limited"
    if status_code >= 500:
        return "server_error"
    return "unknown"


class CompilerApiExecutor(Executor):
    """Client for the third-party compiler API (``POST <provider>/execute``)."""

    kind = ExecutorKind.compiler_api
    languages = frozenset(LANGUAGE_MAP)

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        user_agent: str = "JudgeGateway/1.0",
        max_timeout_s: int = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.max_timeout_s = max_timeout_s
        self.headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": user_agent,
        }
        if api_key:
            self.headers["X-API-Key"] = api_key
        self._transport = transport

    async def execute(self, request: ExecutionRequest) -> ExecutionResult:
        mapped = LANGUAGE_MAP.get(request.language)
        if mapped is None:
            raise CompilerApiError(
                f"Unsupported language for compiler API: {request.language.value}",
                cause="unsupported_language",
            )
        payload = {
            **mapped,
            "code": request.code,
            "input": request.stdin or "",
            "save": False,
            "timeout": min(request.timeout_ms / 1000, self.max_timeout_s),
        }
        log.debug(
            "sending to compiler API language=%s code_len=%d input_len=%d timeout=%s",
            payload["language"],
            len(request.code),
            len(payload["input"]),
            payload["timeout"],
        )

        started = time.perf_counter()
        timeout = httpx.Timeout(request.timeout_ms / 1000)
        try:
            async with httpx.AsyncClient(
                timeout=timeout, headers=self.headers, transport=self._transport
            ) as client:
                resp = await asyncio.wait_for(
                    client.post(f"{self.base_url}/execute", json=payload),
                    timeout=request.timeout_ms / 1000,
                )
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            cause = classify_status(status)
            log.warning("compiler API HTTP %d (%s)", status, cause)
            raise CompilerApiError(
                self._describe(cause, e.response),
                cause=cause,
                status_code=status,
                body=e.response.text,
            ) from e
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            log.warning("compiler API timed out after %dms", request.timeout_ms)
            raise CompilerApiError("Compiler API request timed out", cause="timeout") from e
        except httpx.HTTPError as e:
            log.warning("compiler API unreachable: %s", e)
            raise CompilerApiError(
                "Unable to connect to compiler API", cause="unreachable"
            ) from e

        return self._parse(resp, elapsed_ms(started))

    @staticmethod
    def _describe(cause: str, resp: httpx.Response) -> str:
        if cause == "request_format":
            detail = ""
            try:
                body = resp.json()
                if isinstance(body, dict):
                    detail = str(body.get("message") or "")
            except ValueError:
                pass
            return f"Compiler API format error: {detail or 'Invalid request format'}"
        if cause == "rate_limited":
            return "Compiler API rate limit exceeded"
        if cause == "server_error":
            return "Compiler API server error"
        return f"Compiler API HTTP {resp.status_code}"

    def _parse(self, resp: httpx.Response, wall_ms: int) -> ExecutionResult:
        try:
            data = resp.json()
        except ValueError as e:
            raise MalformedResponseError(
                "Invalid response from compiler API", self.kind.value
            ) from e
        if not isinstance(data, dict) or not data:
            raise MalformedResponseError("Empty response from compiler API", self.kind.value)

        out = data.get("output")
        if out is None:
            out = data.get("stdout")
        if out is None:
            raise MalformedResponseError(
                "Compiler API response has no output field", self.kind.value
            )
        out = str(out)
        err = data.get("errors") or data.get("error") or data.get("stderr")
        exit_code = data.get("exitCode")
        if exit_code is None:
            exit_code = 0 if out else 1
        runtime = data.get("executionTime")
        if runtime is None:
            runtime = data.get("runtime")
        return ExecutionResult(
            stdout=out,
            stderr=str(err) if err else None,
            exit_code=exit_code,
            runtime=format_runtime(runtime, wall_ms),
            memory=format_memory(data.get("memory"), "KB"),
            executor=self.kind,
        )
