import json, time
from uuid import uuid4
from judge.queues.redis import (
    RUN_STREAM,
    SESSION_TTL_SECONDS,
    STREAM_MAXLEN,
    event_channel,
    session_key,
)
from judge.schemas.enums import SessionKind, SessionStatus

TERMINAL_STATUSES = (SessionStatus.completed.value, SessionStatus.error.value)


def now_ms() -> int:
    return int(time.time() * 1000)


async def create_session(r, kind: SessionKind, language: str, job: dict) -> str:
    """Store a queued snapshot, enqueue the job and announce it."""
    session_id = str(uuid4())
    snapshot = {
        "session_id": session_id,
        "kind": kind.value,
        "status": SessionStatus.queued.value,
        "language": language,
        "created_at": now_ms(),
    }
    await r.setex(session_key(session_id), SESSION_TTL_SECONDS, json.dumps(snapshot).encode())
    payload = {"session_id": session_id, "kind": kind.value, "language": language, **job}
    await r.xadd(RUN_STREAM, {b"json": json.dumps(payload).encode()}, maxlen=STREAM_MAXLEN)
    await publish(r, session_id, {"status": SessionStatus.queued.value, "language": language})
    return session_id


async def get_session(r, session_id: str) -> dict | None:
    raw = await r.get(session_key(session_id))
    if not raw:
        return None
    return json.loads(raw)


async def update_session(r, session_id: str, **changes) -> dict:
    """Merge ``changes`` into the snapshot, keep its TTL fresh and publish it."""
    snapshot = await get_session(r, session_id) or {"session_id": session_id}
    snapshot.update(changes)
    if snapshot.get("status") in TERMINAL_STATUSES:
        snapshot.setdefault("completed_at", now_ms())
    await r.setex(session_key(session_id), SESSION_TTL_SECONDS, json.dumps(snapshot).encode())
    await publish(r, session_id, changes)
    return snapshot


async def publish(r, session_id: str, event: dict):
    await r.publish(
        event_channel(session_id),
        json.dumps({"type": "update", "session_id": session_id, **event}).encode(),
    )
