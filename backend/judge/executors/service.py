import asyncio, logging, time
import httpx
from judge.core.errors import MalformedResponseError, RemoteExecutorError
from judge.executors.base import Executor, elapsed_ms, format_memory, format_runtime
from judge.schemas.enums import ExecutorKind
from judge.schemas.execution import ExecutionRequest, ExecutionResult

log = logging.getLogger("judge.executor.service")


class ServiceExecutor(Executor):
    """Client for the self-hosted execution service (``POST <base>/api/execute``)."""

    kind = ExecutorKind.service

    def __init__(self, base_url: str, transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self._transport = transport

    async def execute(self, request: ExecutionRequest) -> ExecutionResult:
        url = f"{self.base_url}/api/execute"
        body = {
            "language": request.language.value,
            "files": [{"content": request.code}],
            "timeout": request.timeout_ms,
        }
        if request.stdin is not None:
            body["stdin"] = request.stdin
        log.debug("POST %s language=%s", url, request.language.value)

        started = time.perf_counter()
        timeout = httpx.Timeout(request.timeout_ms / 1000)
        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            try:
                # httpx timeouts are per phase; the deadline covers the whole call
                resp = await asyncio.wait_for(
                    client.post(url, json=body), timeout=request.timeout_ms / 1000
                )
            except (httpx.TimeoutException, asyncio.TimeoutError) as e:
                raise RemoteExecutorError(
                    f"Local executor timed out after {request.timeout_ms}ms", self.kind.value
                ) from e
            except httpx.HTTPError as e:
                raise RemoteExecutorError(
                    f"Local executor unreachable: {e}", self.kind.value
                ) from e

        if not resp.is_success:
            raise RemoteExecutorError(
                f"Local executor HTTP {resp.status_code}: {resp.text[:500]}",
                self.kind.value,
                status_code=resp.status_code,
                body=resp.text,
            )
        return self._parse(resp, elapsed_ms(started))

    def _parse(self, resp: httpx.Response, wall_ms: int) -> ExecutionResult:
        try:
            data = resp.json()
        except ValueError as e:
            raise MalformedResponseError(
                "Invalid response from local executor", self.kind.value
            ) from e
        if not isinstance(data, dict) or not data:
            raise MalformedResponseError(
                "Invalid response from local executor", self.kind.value
            )

        run = data.get("run")
        if isinstance(run, dict) and run.get("output") is not None:
            out, err = run.get("output"), run.get("stderr")
        elif data.get("stdout") is not None:
            out, err = data.get("stdout"), data.get("stderr")
        else:
            raise MalformedResponseError(
                "Local executor response has no output field", self.kind.value
            )

        out = str(out)
        exit_code = data.get("exitCode")
        if exit_code is None:
            exit_code = 0 if out else 1
        return ExecutionResult(
            stdout=out,
            stderr=str(err) if err else None,
            exit_code=exit_code,
            runtime=format_runtime(data.get("runtimeMs"), wall_ms),
            memory=format_memory(data.get("memoryKb"), "KB"),
            executor=self.kind,
        )
