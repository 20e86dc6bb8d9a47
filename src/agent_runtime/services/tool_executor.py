"""Tool dispatch with failure capture and audit entries."""

import logging
from typing import Any, Dict, Optional

from agent_runtime.lib.errors import ToolExecutionError
from agent_runtime.lib.observability import get_tracer
from agent_runtime.models.audit_record import AuditLogEntry, AuditResult, GovernanceDecision
from agent_runtime.models.tool import ToolResult
from agent_runtime.services.context import ExecutionContext
from agent_runtime.services.tool_registry import ToolRegistry
from agent_runtime.tools import BUILTIN_HANDLERS, ToolHandler


logger = logging.getLogger(__name__)


def build_audit_entry(tool_name: str, params: Dict[str, Any], result: ToolResult) -> AuditLogEntry:
    """Build the audit entry for an executed file system or search tool."""
    data = result.data if isinstance(result.data, dict) else {}
    entry: Dict[str, Any] = {
        "tool": tool_name,
        "path": params.get("path"),
        "result": AuditResult.SUCCESS if result.success else AuditResult.ERROR,
        "governance": GovernanceDecision.PASS,
    }

    if not result.success:
        entry["reason"] = result.error

    if tool_name == "read_file":
        entry["lines"] = data.get("lines_returned")
    elif tool_name == "write_file":
        if data.get("action") in ("created", "modified"):
            entry["action"] = "create" if data["action"] == "created" else "modify"
        entry["bytes"] = data.get("bytes")
    elif tool_name == "list_files":
        entry["count"] = data.get("count")
    elif tool_name == "search_files":
        entry["path"] = params.get("path") or "."
        entry["matches"] = data.get("total_matches")

    return AuditLogEntry(**entry)


def build_denied_audit_entry(tool_name: str, params: Dict[str, Any], reason: str) -> AuditLogEntry:
    """Build the audit entry for a call governance rejected before execution."""
    return AuditLogEntry(
        tool=tool_name,
        path=params.get("path"),
        result=AuditResult.DENIED,
        governance=GovernanceDecision.DENY,
        reason=reason,
    )


class ToolExecutor:
    """Dispatches tool calls to their implementations.

    Never raises for tool problems: unknown tools and implementation
    failures both come back as failed ToolResults.
    """

    def __init__(self, registry: ToolRegistry, handlers: Optional[Dict[str, ToolHandler]] = None):
        """Initialize the executor.

        Args:
            registry: Tool catalog used for categories and audit decisions
            handlers: Tool implementations by name; defaults to the built-ins
        """
        self.registry = registry
        self.handlers: Dict[str, ToolHandler] = dict(BUILTIN_HANDLERS if handlers is None else handlers)
        self.logger = logging.getLogger(__name__)

    def register_handler(self, name: str, handler: ToolHandler) -> None:
        self.handlers[name] = handler

    async def execute(self, name: str, params: Dict[str, Any], context: ExecutionContext) -> ToolResult:
        """Execute a tool and emit its audit entry if it touches files.

        Args:
            name: Tool name
            params: Tool arguments
            context: Execution context of the calling session

        Returns:
            ToolResult describing success or failure
        """
        tool = self.registry.get_tool(name)
        handler = self.handlers.get(name)
        if tool is None or handler is None:
            self.logger.warning(f"Unknown tool requested: {name}")
            return ToolResult.fail(f"Unknown tool: {name}")

        tracer = get_tracer(__name__)
        with tracer.start_as_current_span(
            "tool.execute",
            attributes={"tool.name": name, "tool.role": context.role}
        ) as span:
            try:
                result = await handler(params, context)
            except ToolExecutionError as e:
                result = ToolResult.fail(str(e))
            except Exception as e:
                self.logger.error(f"Tool {name} raised: {e}", exc_info=True)
                result = ToolResult.fail(f"Tool execution failed: {e}")
            span.set_attribute("tool.success", result.success)

        if tool.is_audited:
            await self._audit(build_audit_entry(name, params, result), context)

        return result

    async def audit_denied(self, name: str, params: Dict[str, Any], reason: str, context: ExecutionContext) -> None:
        """Record a governance denial in the audit log."""
        await self._audit(build_denied_audit_entry(name, params, reason), context)

    async def _audit(self, entry: AuditLogEntry, context: ExecutionContext) -> None:
        if context.audit_log is None:
            return
        try:
            await context.audit_log(entry)
        except Exception as e:
            self.logger.warning(f"Audit logging failed for {entry.tool}: {e}")
