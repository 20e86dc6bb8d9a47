"""Execution contexts handed to tool implementations."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Optional

from agent_runtime.lib.errors import ToolExecutionError
from agent_runtime.models.audit_record import AuditLogEntry
from agent_runtime.models.spawn import ChildSessionRequest, ChildSessionResult, SpawnPolicy
from agent_runtime.services.interfaces import EventSink


AuditCallback = Callable[[AuditLogEntry], Awaitable[None]]
SpawnChildCallback = Callable[[ChildSessionRequest], Awaitable[ChildSessionResult]]


@dataclass
class ExecutionContext:
    """Per-call environment for a tool: who is acting, where, and for what."""

    role: str
    workspace_root: Path
    chain_id: Optional[str] = None
    task_id: Optional[str] = None
    audit_log: Optional[AuditCallback] = None
    event_sink: Optional[EventSink] = None
    spawn_policy: SpawnPolicy = field(default_factory=SpawnPolicy)

    def __post_init__(self):
        self.workspace_root = Path(self.workspace_root).resolve()

    def resolve_path(self, path: str) -> Path:
        """Resolve a tool path against the workspace root.

        Raises:
            ToolExecutionError: If the path resolves outside the workspace
        """
        candidate = Path(path).expanduser()
        if not candidate.is_absolute():
            candidate = self.workspace_root / candidate
        resolved = candidate.resolve()
        if resolved != self.workspace_root and self.workspace_root not in resolved.parents:
            raise ToolExecutionError(f"Path is outside the workspace: {path}")
        return resolved

    def relative_path(self, path: Path) -> str:
        """Workspace-relative POSIX form of a resolved path."""
        relative = path.relative_to(self.workspace_root).as_posix()
        return relative or "."


@dataclass
class NestedSessionContext(ExecutionContext):
    """Execution context for sessions that may spawn child sessions."""

    session_id: str = ""
    parent_session_id: Optional[str] = None
    nesting_depth: int = 0
    max_nesting_depth: int = 0
    spawn_child_session: Optional[SpawnChildCallback] = None
