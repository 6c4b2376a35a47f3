"""
Tests for redis-backed run sessions and the queue worker, against an
in-memory redis double.
"""

import asyncio
import json
from unittest.mock import AsyncMock

from judge.queues.redis import RUN_STREAM, event_channel, session_key
from judge.schemas.enums import SessionKind
from judge.services.grader import Grader
from judge.services.sessions import create_session, get_session, update_session
from judge.worker.consumer import GROUP, ensure_group, run_job


def enqueue(r, kind, language, job):
    session_id = asyncio.run(create_session(r, kind, language, job))
    _stream, fields = r.streams[-1]
    return session_id, fields


class TestSessions:
    """Snapshot lifecycle and event publication."""

    def test_create_session(self, fake_redis):
        session_id, fields = enqueue(fake_redis, SessionKind.run, "python", {"code": "print(1)"})

        snapshot = asyncio.run(get_session(fake_redis, session_id))
        assert snapshot["status"] == "queued"
        assert snapshot["kind"] == "run"
        assert session_key(session_id) in fake_redis.store

        assert fake_redis.streams[0][0] == RUN_STREAM
        payload = json.loads(fields[b"json"])
        assert payload["session_id"] == session_id
        assert payload["code"] == "print(1)"

        channel, event = fake_redis.published[0]
        assert channel == event_channel(session_id)
        assert event["type"] == "update"
        assert event["status"] == "queued"

    def test_unknown_session(self, fake_redis):
        assert asyncio.run(get_session(fake_redis, "missing")) is None

    def test_update_marks_completion(self, fake_redis):
        session_id, _ = enqueue(fake_redis, SessionKind.run, "python", {})

        running = asyncio.run(update_session(fake_redis, session_id, status="running"))
        assert "completed_at" not in running

        done = asyncio.run(update_session(fake_redis, session_id, status="completed", result={"stdout": "1"}))
        assert done["completed_at"] >= done["created_at"]
        assert asyncio.run(get_session(fake_redis, session_id))["result"] == {"stdout": "1"}
        assert fake_redis.published[-1][1]["status"] == "completed"


class TestWorker:
    """Jobs taken off the stream end in a terminal snapshot and are acked."""

    def test_run_job_completes(self, fake_redis, simulated_chain):
        session_id, fields = enqueue(
            fake_redis,
            SessionKind.run,
            "python",
            {"code": "print(input())", "language": "python", "input": "hi", "expected_output": "hi"},
        )

        asyncio.run(run_job(fake_redis, simulated_chain, Grader(simulated_chain), b"1-0", fields))

        snapshot = asyncio.run(get_session(fake_redis, session_id))
        assert snapshot["status"] == "completed"
        assert snapshot["result"]["stdout"] == "hi"
        assert snapshot["result"]["simulated"] is True
        assert snapshot["result"]["passed"] is True
        assert fake_redis.acked == [b"1-0"]
        statuses = [e.get("status") for _, e in fake_redis.published]
        assert statuses == ["queued", "running", "completed"]
        assert snapshot["result"]["status"] == "Completed"

    def test_run_job_unknown_language_errors(self, fake_redis, simulated_chain):
        session_id, fields = enqueue(
            fake_redis, SessionKind.run, "cobol", {"code": "x", "language": "cobol"}
        )

        asyncio.run(run_job(fake_redis, simulated_chain, Grader(simulated_chain), b"2-0", fields))

        snapshot = asyncio.run(get_session(fake_redis, session_id))
        assert snapshot["status"] == "error"
        assert snapshot["error"] == "Unsupported language: cobol"
        assert fake_redis.acked == [b"2-0"]

    def test_grade_job(self, fake_redis, simulated_chain):
        session_id, fields = enqueue(
            fake_redis,
            SessionKind.grade,
            "python",
            {
                "code": "print(input())",
                "language": "python",
                "test_cases": [{"input": "4", "expected_output": "4"}],
                "options": None,
            },
        )

        asyncio.run(run_job(fake_redis, simulated_chain, Grader(simulated_chain), b"3-0", fields))

        result = asyncio.run(get_session(fake_redis, session_id))["result"]
        assert result["status"] == "Accepted"
        assert result["score"] == 100

    def test_malformed_job_errors(self, fake_redis, simulated_chain):
        session_id, fields = enqueue(fake_redis, SessionKind.run, "python", {"language": "python"})

        asyncio.run(run_job(fake_redis, simulated_chain, Grader(simulated_chain), b"4-0", fields))

        assert asyncio.run(get_session(fake_redis, session_id))["status"] == "error"
        assert fake_redis.acked == [b"4-0"]


    def test_grade_job_reports_progress(self, fake_redis, simulated_chain):
        session_id, fields = enqueue(
            fake_redis,
            SessionKind.grade,
            "python",
            {
                "code": "print(input())",
                "language": "python",
                "test_cases": [
                    {"input": "4", "expected_output": "4"},
                    {"input": "5", "expected_output": "5"},
                ],
                "options": None,
            },
        )

        asyncio.run(run_job(fake_redis, simulated_chain, Grader(simulated_chain), b"5-0", fields))

        progress = [e["progress"] for _, e in fake_redis.published if "progress" in e]
        assert progress == [
            {"current": 0, "total": 2},
            {"current": 1, "total": 2},
            {"current": 2, "total": 2},
        ]
        snapshot = asyncio.run(get_session(fake_redis, session_id))
        assert snapshot["progress"] == {"current": 2, "total": 2}
        assert snapshot["status"] == "completed"

    def test_unexpected_failure_still_acks(self, fake_redis, simulated_chain):
        session_id, fields = enqueue(
            fake_redis, SessionKind.run, "python", {"code": "print(1)", "language": "python"}
        )
        chain = AsyncMock()
        chain.execute_best_effort.side_effect = RuntimeError("boom")

        asyncio.run(run_job(fake_redis, chain, Grader(simulated_chain), b"6-0", fields))

        snapshot = asyncio.run(get_session(fake_redis, session_id))
        assert snapshot["status"] == "error"
        assert snapshot["error"] == "boom"
        assert fake_redis.acked == [b"6-0"]

    def test_unexpected_failure_without_message(self, fake_redis, simulated_chain):
        session_id, fields = enqueue(
            fake_redis, SessionKind.run, "python", {"code": "print(1)", "language": "python"}
        )
        chain = AsyncMock()
        chain.execute_best_effort.side_effect = ZeroDivisionError()

        asyncio.run(run_job(fake_redis, chain, Grader(simulated_chain), b"7-0", fields))

        assert asyncio.run(get_session(fake_redis, session_id))["error"] == "ZeroDivisionError"
        assert fake_redis.acked == [b"7-0"]


class TestConsumerGroup:
    """Group creation is idempotent."""

    def test_creates_missing_group(self):
        r = AsyncMock()
        r.xinfo_groups.return_value = [{b"name": b"other"}]

        asyncio.run(ensure_group(r))

        r.xgroup_create.assert_awaited_once_with(RUN_STREAM, GROUP, id="$", mkstream=True)

    def test_existing_group_left_alone(self):
        r = AsyncMock()
        r.xinfo_groups.return_value = [{b"name": GROUP.encode()}]

        asyncio.run(ensure_group(r))

        r.xgroup_create.assert_not_awaited()

    def test_missing_stream(self):
        r = AsyncMock()
        r.xinfo_groups.side_effect = RuntimeError("no such key")

        asyncio.run(ensure_group(r))

        r.xgroup_create.assert_awaited_once()
