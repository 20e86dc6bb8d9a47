"""
Unit tests for session state management.

Covers the Session aggregate lifecycle, crash-recoverable persistence
through SessionStore, listing and cleanup.
"""

import json
import os
import time

import pytest

from agent_runtime.lib.errors import NestingDepthError, SessionPersistenceError
from agent_runtime.models.governance import ValidationResult
from agent_runtime.models.message import Message, ToolCall
from agent_runtime.models.session_data import SessionOutcome, SessionStatus
from agent_runtime.models.tool import ToolResult
from agent_runtime.services.session import Session
from agent_runtime.services.session_store import SessionStore


@pytest.fixture
def session(session_store):
    """Fresh root session for role impl."""
    return Session.create(session_store, role="impl", model="test-model", chain_id="CHAIN-001", task_id="TASK-1")


class TestSessionLifecycle:
    """State transitions and invariants."""

    def test_new_session_defaults(self, session):
        assert session.status == SessionStatus.RUNNING
        assert session.is_root()
        assert not session.is_terminal()
        assert session.nesting_depth == 0
        assert session.last_turn_index == 0
        assert session.token_usage.total == 0

    @pytest.mark.asyncio
    async def test_create_does_not_persist(self, session, session_store):
        assert await session_store.load(session.id) is None

    def test_token_usage_accumulates(self, session):
        session.update_token_usage(100, 20)
        usage = session.update_token_usage(5, 7)

        assert usage.input == 105
        assert usage.output == 27
        assert usage.total == 132

    @pytest.mark.asyncio
    async def test_pause_and_resume(self, session, session_store):
        await session.set_status(SessionStatus.PAUSED)
        assert (await session_store.load(session.id)).status == "paused"

        await session.set_status("running")
        assert session.status == "running"

    @pytest.mark.asyncio
    async def test_terminal_status_requires_end(self, session):
        with pytest.raises(ValueError):
            await session.set_status(SessionStatus.COMPLETED)

    @pytest.mark.asyncio
    async def test_end_success(self, session):
        await session.end(SessionOutcome.SUCCESS)

        assert session.status == "completed"
        assert session.outcome == "success"
        assert session.end_time is not None
        assert session.is_terminal()

        with pytest.raises(ValueError):
            await session.set_status(SessionStatus.RUNNING)

    @pytest.mark.asyncio
    async def test_end_interrupted_is_failed(self, session):
        await session.end(SessionOutcome.INTERRUPTED)
        assert session.status == "failed"
        assert session.outcome == "interrupted"

    @pytest.mark.asyncio
    async def test_set_failed_records_error(self, session, session_store):
        try:
            raise RuntimeError("provider timed out")
        except RuntimeError as e:
            await session.set_failed(e, recoverable=True)

        stored = await session_store.load(session.id)
        assert stored.status == "failed"
        assert stored.outcome == "failure"
        assert stored.error.message == "provider timed out"
        assert stored.error.recoverable is True
        assert "RuntimeError" in stored.error.stack

    @pytest.mark.asyncio
    async def test_end_twice_is_rejected(self, session, session_store):
        await session.end(SessionOutcome.SUCCESS)
        ended_at = session.end_time

        with pytest.raises(ValueError, match="already ended"):
            await session.end(SessionOutcome.FAILURE)
        with pytest.raises(ValueError, match="already ended"):
            await session.set_failed(RuntimeError("late"))

        assert session.status == "completed"
        assert session.end_time == ended_at
        assert session.error is None
        assert (await session_store.load(session.id)).status == "completed"

    def test_tool_message_must_answer_issued_call(self, session):
        with pytest.raises(ValueError, match="unknown tool call never-issued"):
            session.add_message(Message.tool("x", tool_call_id="never-issued"))
        assert session.messages == []

    def test_tool_message_answering_prior_call(self, session):
        call = ToolCall(id="call-7", name="read_file", arguments={"path": "a.ts"})
        session.add_message(Message.assistant("Reading.", [call]))
        session.add_message(Message.tool("contents", tool_call_id="call-7", tool_name="read_file"))

        assert [m.role for m in session.messages] == ["assistant", "tool"]
        with pytest.raises(ValueError):
            session.add_message(Message.tool("again", tool_call_id="call-8"))

    def test_messages_are_copies(self, session):
        session.add_message(Message.user("hello"))
        session.messages[0].content = "mutated"
        assert session.messages[0].content == "hello"


class TestPersistence:
    """Crash recovery and the JSON document."""

    @pytest.mark.asyncio
    async def test_round_trip(self, session, session_store):
        session.add_message(Message.system("You are impl."))
        session.add_message(Message.user("Fix the bug"))
        session.update_token_usage(10, 5)
        call = ToolCall(id="call-1", name="read_file", arguments={"path": "a.ts"})
        await session.record_tool_call(call, ToolResult.ok({"content": "x"}), ValidationResult.allow())
        await session.increment_turn_index()

        restored = await Session.restore(session_store, session.id)

        assert restored.to_dict() == session.to_dict()
        assert restored.last_turn_index == 1
        assert restored.tool_calls[0].governance_result == {"allowed": True}
        assert restored.tool_calls[0].result["data"] == {"content": "x"}
        assert restored.token_usage.total == 15

    @pytest.mark.asyncio
    async def test_denied_call_keeps_reason(self, session):
        call = ToolCall(id="call-2", name="write_file", arguments={"path": "docs/tasks/a.md"})
        record = await session.record_tool_call(call, ToolResult.fail("denied"), ValidationResult.deny("denied"))
        assert record.governance_result == {"allowed": False, "reason": "denied"}

    @pytest.mark.asyncio
    async def test_document_is_pretty_printed(self, session, session_store):
        await session.save()
        text = session_store.path_for(session.id).read_text()

        assert text.startswith("{\n  ")
        assert json.loads(text)["id"] == session.id
        assert not list(session_store.storage_path.glob("*.tmp"))

    @pytest.mark.asyncio
    async def test_restore_missing(self, session_store):
        assert await Session.restore(session_store, "session-20240101-000000-abcdef") is None

    @pytest.mark.asyncio
    async def test_corrupt_record(self, session_store):
        session_store.storage_path.mkdir(parents=True)
        session_store.path_for("session-20240101-000000-0badf0").write_text("{not json")

        with pytest.raises(SessionPersistenceError):
            await session_store.load("session-20240101-000000-0badf0")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("session_id", ["../x", "../../etc/passwd", "session-20240101-000000-abcdef/../../x", ""])
    async def test_ids_cannot_leave_storage(self, session_store, session_id):
        with pytest.raises(SessionPersistenceError, match="Invalid session id"):
            await Session.restore(session_store, session_id)
        with pytest.raises(SessionPersistenceError):
            await session_store.delete(session_id)

    @pytest.mark.asyncio
    async def test_unwritable_storage(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        store = SessionStore(blocker)
        session = Session.create(store, role="impl", model="m")

        with pytest.raises(SessionPersistenceError) as exc_info:
            await session.save()
        assert exc_info.value.session_id == session.id


class TestNesting:
    """Child sessions."""

    @pytest.mark.asyncio
    async def test_child_inherits_chain_and_task(self, session):
        child = session.create_child("review", max_nesting_depth=2)
        await session.add_child_session(child.id)

        assert child.parent_session_id == session.id
        assert child.nesting_depth == 1
        assert child.chain_id == "CHAIN-001"
        assert child.task_id == "TASK-1"
        assert child.model == "test-model"
        assert not child.is_root()
        assert session.child_session_ids == [child.id]

    def test_child_depth_limit(self, session):
        child = session.create_child("impl", max_nesting_depth=1)
        with pytest.raises(NestingDepthError):
            child.create_child("impl", max_nesting_depth=1)

    @pytest.mark.asyncio
    async def test_child_link_is_idempotent(self, session):
        await session.add_child_session("session-child")
        await session.add_child_session("session-child")
        assert session.child_session_ids == ["session-child"]


class TestStoreListing:
    """Summaries and cleanup."""

    @pytest.mark.asyncio
    async def test_list_summaries(self, session_store):
        first = Session.create(session_store, role="impl", model="m")
        second = Session.create(session_store, role="review", model="m")
        second.update_token_usage(3, 4)
        await first.save()
        await second.save()
        (session_store.storage_path / "garbage.json").write_text("[]")

        summaries = await session_store.list_summaries()

        assert {summary.id for summary in summaries} == {first.id, second.id}
        review = next(summary for summary in summaries if summary.role == "review")
        assert review.total_tokens == 7

    @pytest.mark.asyncio
    async def test_list_empty_store(self, session_store):
        assert await session_store.list_summaries() == []

    @pytest.mark.asyncio
    async def test_cleanup_removes_old_records(self, session_store):
        old = Session.create(session_store, role="impl", model="m")
        fresh = Session.create(session_store, role="impl", model="m")
        await old.save()
        await fresh.save()
        forty_days_ago = time.time() - 40 * 24 * 60 * 60
        os.utime(session_store.path_for(old.id), (forty_days_ago, forty_days_ago))

        removed = await session_store.cleanup(older_than_days=30)

        assert removed == 1
        assert await session_store.load(old.id) is None
        assert await session_store.load(fresh.id) is not None

    @pytest.mark.asyncio
    async def test_delete(self, session, session_store):
        await session.save()
        assert await session_store.delete(session.id)
        assert not await session_store.delete(session.id)
