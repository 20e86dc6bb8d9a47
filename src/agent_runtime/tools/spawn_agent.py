"""The spawn_agent tool: run a child session and wait for its result."""

import logging
from typing import Any, Dict

from agent_runtime.lib.logging_config import SecurityEventLogger
from agent_runtime.models.spawn import ChildSessionRequest, can_spawn_role
from agent_runtime.models.tool import ToolResult
from agent_runtime.services.context import ExecutionContext, NestedSessionContext
from agent_runtime.services.events import emit_event


logger = logging.getLogger(__name__)

security_log = SecurityEventLogger()


async def spawn_agent(params: Dict[str, Any], context: ExecutionContext) -> ToolResult:
    """Spawn a child session after role, escalation, context and depth checks.

    The spawn callback is only invoked once every check has passed. A child
    that fails is reported as a failed ToolResult carrying its diagnostics.
    """
    role = params.get("role")
    policy = context.spawn_policy
    parent_id = getattr(context, "session_id", "") or "unknown"

    if not role:
        return ToolResult.fail("role is required")

    if role not in policy.recognized_roles:
        return ToolResult.fail(
            f"Invalid role: {role}. Must be one of: {', '.join(policy.recognized_roles)}"
        )

    if not can_spawn_role(context.role, role, policy.privileged_roles):
        reason = f"Role {context.role} cannot spawn higher-privilege role {role}"
        security_log.log_spawn_event(parent_id, role, "deny", reason=reason)
        return ToolResult.fail(reason)

    if not isinstance(context, NestedSessionContext):
        return ToolResult.fail(
            "Nested session context not available. This tool requires the extended execution context."
        )

    next_depth = context.nesting_depth + 1
    if next_depth > context.max_nesting_depth:
        reason = (
            f"Maximum nesting depth ({context.max_nesting_depth}) would be exceeded. "
            f"Current depth: {context.nesting_depth}"
        )
        security_log.log_spawn_event(parent_id, role, "deny", reason=reason)
        return ToolResult.fail(reason)

    if context.spawn_child_session is None:
        return ToolResult.fail("Session spawning is not available in this execution context")

    request = ChildSessionRequest(
        role=role,
        role_id=role,
        chain_id=params.get("chain_id") or context.chain_id,
        task_id=params.get("task_id") or context.task_id,
        context=params.get("context"),
        parent_session_id=context.session_id,
        nesting_depth=next_depth,
    )

    emit_event(context.event_sink, "child_session_spawned", {
        "parent_session_id": context.session_id,
        "role": role,
        "nesting_depth": next_depth,
    })
    logger.info(f"Spawning {role} child session from {context.session_id} at depth {next_depth}")

    try:
        result = await context.spawn_child_session(request)
    except Exception as e:
        logger.error(f"Child session spawn failed for {role}: {e}")
        return ToolResult.fail(f"Failed to spawn child session: {e}")

    security_log.log_spawn_event(
        context.session_id,
        role,
        "completed" if result.success else "failed",
        reason=result.error,
        child_session_id=result.session_id,
    )
    emit_event(context.event_sink, "child_session_completed", {
        "parent_session_id": context.session_id,
        "child_session_id": result.session_id,
        "success": result.success,
    })

    data = result.to_tool_data(role)
    if not result.success:
        data["message"] = f"Child session {result.session_id} failed"
        return ToolResult.fail(result.error or "Child session failed", data=data)

    data["message"] = f"Child session {result.session_id} completed successfully"
    return ToolResult.ok(data)
