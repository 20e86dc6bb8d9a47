"""Unit tests for the spawn_agent tool."""

from unittest.mock import AsyncMock, Mock

import pytest

from agent_runtime.models.spawn import ChildSessionResult, ChildTokenUsage
from agent_runtime.services.context import ExecutionContext, NestedSessionContext
from agent_runtime.services.events import RecordingEventSink
from agent_runtime.tools.spawn_agent import spawn_agent


@pytest.fixture
def event_sink():
    return RecordingEventSink()


@pytest.fixture
def child_result():
    return ChildSessionResult(
        success=True,
        session_id="session-20260101-000000-abcdef",
        iterations=3,
        tokens_used=ChildTokenUsage(input=120, output=40),
        summary="Implemented the helper",
    )


def nested_context(workspace, callback=None, role="impl", depth=0, max_depth=2, sink=None):
    return NestedSessionContext(
        role=role,
        workspace_root=workspace,
        chain_id="CHAIN-001",
        task_id="TASK-7",
        event_sink=sink,
        session_id="session-parent",
        nesting_depth=depth,
        max_nesting_depth=max_depth,
        spawn_child_session=callback,
    )


class TestSpawnChecks:
    """Checks that run before the callback."""

    @pytest.mark.asyncio
    async def test_role_required(self, workspace):
        callback = AsyncMock()
        result = await spawn_agent({}, nested_context(workspace, callback))
        assert result.error == "role is required"
        callback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_role(self, workspace):
        result = await spawn_agent({"role": "wizard"}, nested_context(workspace, AsyncMock()))
        assert result.error.startswith("Invalid role: wizard. Must be one of: impl, design, review")

    @pytest.mark.asyncio
    async def test_escalation_denied(self, workspace):
        callback = AsyncMock()
        result = await spawn_agent({"role": "control"}, nested_context(workspace, callback, role="impl"))

        assert result.error == "Role impl cannot spawn higher-privilege role control"
        callback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_plain_context_rejected(self, workspace):
        context = ExecutionContext(role="impl", workspace_root=workspace)
        result = await spawn_agent({"role": "impl"}, context)
        assert result.error.startswith("Nested session context not available.")

    @pytest.mark.asyncio
    async def test_depth_exceeded_never_calls_callback(self, workspace):
        callback = AsyncMock()
        context = nested_context(workspace, callback, depth=2, max_depth=2)

        result = await spawn_agent({"role": "impl"}, context)

        assert result.error == "Maximum nesting depth (2) would be exceeded. Current depth: 2"
        callback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_callback(self, workspace):
        result = await spawn_agent({"role": "impl"}, nested_context(workspace))
        assert result.error == "Session spawning is not available in this execution context"


class TestSpawnExecution:
    """Callback invocation and result mapping."""

    @pytest.mark.asyncio
    async def test_success(self, workspace, child_result, event_sink):
        callback = AsyncMock(return_value=child_result)
        context = nested_context(workspace, callback, depth=1, sink=event_sink)

        result = await spawn_agent({"role": "impl", "context": "Add a helper"}, context)

        assert result.success
        assert result.data["child_session_id"] == child_result.session_id
        assert result.data["tokens_used"] == {"input": 120, "output": 40}
        assert result.data["message"] == f"Child session {child_result.session_id} completed successfully"

        request = callback.await_args.args[0]
        assert request.role == "impl"
        assert request.context == "Add a helper"
        assert request.chain_id == "CHAIN-001"
        assert request.task_id == "TASK-7"
        assert request.parent_session_id == "session-parent"
        assert request.nesting_depth == 2

        assert [event.type for event in event_sink.events] == ["child_session_spawned", "child_session_completed"]

    @pytest.mark.asyncio
    async def test_privileged_role_spawns_other_role(self, workspace, child_result):
        callback = AsyncMock(return_value=child_result)
        result = await spawn_agent({"role": "review"}, nested_context(workspace, callback, role="control"))
        assert result.success

    @pytest.mark.asyncio
    async def test_explicit_chain_overrides_inherited(self, workspace, child_result):
        callback = AsyncMock(return_value=child_result)
        await spawn_agent({"role": "impl", "chain_id": "CHAIN-009"}, nested_context(workspace, callback))
        assert callback.await_args.args[0].chain_id == "CHAIN-009"

    @pytest.mark.asyncio
    async def test_child_failure(self, workspace):
        failed = ChildSessionResult(success=False, session_id="session-child", error="model unavailable")
        result = await spawn_agent({"role": "impl"}, nested_context(workspace, AsyncMock(return_value=failed)))

        assert not result.success
        assert result.error == "model unavailable"
        assert result.data["message"] == "Child session session-child failed"
        assert result.data["error"] == "model unavailable"

    @pytest.mark.asyncio
    async def test_callback_exception(self, workspace):
        callback = AsyncMock(side_effect=RuntimeError("store offline"))
        result = await spawn_agent({"role": "impl"}, nested_context(workspace, callback))
        assert result.error == "Failed to spawn child session: store offline"

    @pytest.mark.asyncio
    async def test_broken_event_sink_is_ignored(self, workspace, child_result):
        sink = Mock()
        sink.emit.side_effect = RuntimeError("sink down")
        result = await spawn_agent(
            {"role": "impl"},
            nested_context(workspace, AsyncMock(return_value=child_result), sink=sink)
        )
        assert result.success
