"""Routes model tool calls through governance, execution and the session log."""

import json
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from agent_runtime.models.message import Message, ToolCall
from agent_runtime.models.spawn import SpawnPolicy
from agent_runtime.models.tool import ToolResult
from agent_runtime.services.audit_logger import AuditLogger
from agent_runtime.services.context import ExecutionContext, NestedSessionContext, SpawnChildCallback
from agent_runtime.services.events import emit_event
from agent_runtime.services.governance_gate import GovernanceGate
from agent_runtime.services.interfaces import EventSink
from agent_runtime.services.session import Session
from agent_runtime.services.tool_executor import ToolExecutor


logger = logging.getLogger(__name__)


def build_execution_context(
    session: Session,
    workspace_root: Path,
    spawn_policy: Optional[SpawnPolicy] = None,
    audit_logger: Optional[AuditLogger] = None,
    event_sink: Optional[EventSink] = None,
    spawn_child_session: Optional[SpawnChildCallback] = None
) -> NestedSessionContext:
    """Build the nested execution context for a session's tool calls."""
    policy = spawn_policy or SpawnPolicy()
    return NestedSessionContext(
        role=session.role,
        workspace_root=workspace_root,
        chain_id=session.chain_id,
        task_id=session.task_id,
        audit_log=audit_logger.log if audit_logger is not None else None,
        event_sink=event_sink,
        spawn_policy=policy,
        session_id=session.id,
        parent_session_id=session.parent_session_id,
        nesting_depth=session.nesting_depth,
        max_nesting_depth=policy.max_nesting_depth,
        spawn_child_session=spawn_child_session,
    )


def build_tool_message(tool_call: ToolCall, result: ToolResult) -> Message:
    """Render a tool result as the tool-role message for the next turn."""
    if result.success:
        content = result.data if isinstance(result.data, str) else json.dumps(result.data, ensure_ascii=False, default=str)
    else:
        content = f"Error: {result.error}"
    return Message.tool(content=content, tool_call_id=tool_call.id, tool_name=tool_call.name)


class ToolCallDispatcher:
    """Validates, executes and records tool calls for one session at a time.

    A call only reaches the executor after the governance gate allowed it;
    denied calls are audited and recorded without running.
    """

    def __init__(self, gate: GovernanceGate, executor: ToolExecutor):
        self.gate = gate
        self.executor = executor
        self.logger = logging.getLogger(__name__)

    async def dispatch(self, session: Session, tool_call: ToolCall, context: ExecutionContext) -> ToolResult:
        """Process one tool call end to end."""
        validation = await self.gate.validate(tool_call, session.role, session.chain_id)

        if not validation.allowed:
            self.logger.info(f"Denied {tool_call.name} for session {session.id}: {validation.reason}")
            await self.executor.audit_denied(tool_call.name, tool_call.arguments, validation.reason, context)
            result = ToolResult.fail(validation.reason)
            await session.record_tool_call(tool_call, result, validation)
            emit_event(context.event_sink, "tool_call_denied", {
                "session_id": session.id,
                "tool": tool_call.name,
                "reason": validation.reason,
            })
            return result

        result = await self.executor.execute(tool_call.name, tool_call.arguments, context)
        await session.record_tool_call(tool_call, result, validation)

        if tool_call.name == "spawn_agent" and result.success and isinstance(result.data, dict):
            child_session_id = result.data.get("child_session_id")
            if child_session_id:
                await session.add_child_session(child_session_id)

        emit_event(context.event_sink, "tool_call_executed", {
            "session_id": session.id,
            "tool": tool_call.name,
            "success": result.success,
        })
        return result

    async def dispatch_all(
        self,
        session: Session,
        tool_calls: Sequence[ToolCall],
        context: ExecutionContext
    ) -> List[Tuple[ToolCall, ToolResult]]:
        """Process a turn's tool calls sequentially, in order."""
        results = []
        for tool_call in tool_calls:
            results.append((tool_call, await self.dispatch(session, tool_call, context)))
        return results
