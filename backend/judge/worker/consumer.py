import asyncio, json, logging
from judge.core.config import get_settings
from judge.core.errors import JudgeError
from judge.core.logging import setup_logging
from judge.queues.redis import get_redis, RUN_STREAM
from judge.schemas.enums import SessionKind, SessionStatus
from judge.schemas.submission import GradeOptions
from judge.services.chain import ExecutionChain, build_chain
from judge.services.grader import ComparisonOptions, Grader, ProgressCallback, classify_run, normalize_output
from judge.services.sessions import update_session

settings = get_settings()
GROUP = settings.RUN_GROUP
log = logging.getLogger("judge.worker")


async def ensure_group(r):
    try:
        groups = await r.xinfo_groups(RUN_STREAM)
        if not any(g[b"name"].decode() == GROUP for g in groups):
            await r.xgroup_create(RUN_STREAM, GROUP, id="$", mkstream=True)
    except Exception:
        try:
            await r.xgroup_create(RUN_STREAM, GROUP, id="$", mkstream=True)
        except Exception:
            log.debug("consumer group %s already exists", GROUP)


async def execute_run(chain: ExecutionChain, payload: dict) -> dict:
    res = await chain.execute_best_effort(
        payload["code"],
        payload["language"],
        payload.get("input") or "",
        timeout=payload.get("time_limit"),
    )
    result = res.model_dump(mode="json")
    result["status"] = classify_run(res).value
    expected = payload.get("expected_output")
    if expected is not None:
        strict = ComparisonOptions.resolve("strict")
        result["passed"] = normalize_output(res.stdout, strict) == normalize_output(expected, strict)
    return result


async def execute_grade(grader: Grader, payload: dict, on_progress: ProgressCallback | None = None) -> dict:
    options = GradeOptions.model_validate(payload.get("options") or {})
    res = await grader.grade(
        payload["code"], payload["language"], payload["test_cases"], options, on_progress
    )
    return res.model_dump(mode="json")


async def run_job(r, chain: ExecutionChain, grader: Grader, msg_id, data: dict):
    payload = json.loads(data[b"json"].decode())
    session_id = payload["session_id"]
    await update_session(r, session_id, status=SessionStatus.running.value)

    async def report(current: int, total: int):
        await update_session(r, session_id, progress={"current": current, "total": total})

    try:
        if payload["kind"] == SessionKind.grade.value:
            result = await execute_grade(grader, payload, report)
        else:
            result = await execute_run(chain, payload)
    except (JudgeError, KeyError, ValueError) as e:
        log.warning("session %s failed: %s", session_id, e, extra={"session_id": session_id})
        await update_session(r, session_id, status=SessionStatus.error.value, error=str(e))
    except Exception as e:
        log.error("session %s crashed", session_id, exc_info=True, extra={"session_id": session_id})
        await update_session(r, session_id, status=SessionStatus.error.value, error=str(e) or type(e).__name__)
    else:
        await update_session(r, session_id, status=SessionStatus.completed.value, result=result)
    await r.xack(RUN_STREAM, GROUP, msg_id)


async def main():
    setup_logging(settings.LOG_LEVEL)
    chain = build_chain(settings)
    grader = Grader(
        chain,
        default_time_limit_ms=settings.DEFAULT_TIME_LIMIT_MS,
        concurrency=settings.GRADE_CONCURRENCY,
    )
    async with get_redis() as r:
        await ensure_group(r)
        while True:
            resp = await r.xreadgroup(
                GROUP, "consumer-1", streams={RUN_STREAM: ">"}, count=1, block=5000
            )
            if not resp:
                continue
            for _stream, messages in resp:
                for msg_id, data in messages:
                    await run_job(r, chain, grader, msg_id, data)


if __name__ == "__main__":
    asyncio.run(main())
