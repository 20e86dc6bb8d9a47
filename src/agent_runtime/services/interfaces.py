"""Contracts for collaborators the runtime consumes but does not implement."""

from typing import Optional, Protocol, runtime_checkable

from agent_runtime.models.event import RuntimeEvent
from agent_runtime.models.governance import LockStatus
from agent_runtime.models.role import Role
from agent_runtime.models.spawn import ChildSessionRequest, ChildSessionResult


@runtime_checkable
class RoleLookup(Protocol):
    """Resolves role ids to their permitted tool set."""

    async def get(self, role_id: str) -> Optional[Role]:
        """Return the role, or None if it does not exist."""
        ...


@runtime_checkable
class LockChecker(Protocol):
    """Answers whether a workspace path is held by a chain."""

    async def is_file_locked(self, path: str) -> LockStatus:
        ...


@runtime_checkable
class EventSink(Protocol):
    """Receives best-effort runtime notifications."""

    def emit(self, event: RuntimeEvent) -> None:
        ...


class SpawnCallback(Protocol):
    """Runs a child session to completion."""

    async def __call__(self, request: ChildSessionRequest) -> ChildSessionResult:
        ...
