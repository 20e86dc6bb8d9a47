"""Shared fixtures for agent runtime tests."""

from typing import List

import pytest

from agent_runtime.lib.config import load_governance_schema
from agent_runtime.models.audit_record import AuditLogEntry
from agent_runtime.services.context import ExecutionContext
from agent_runtime.services.governance_gate import GovernanceGate
from agent_runtime.services.role_directory import StaticRoleDirectory
from agent_runtime.services.session_store import SessionStore
from agent_runtime.services.tool_executor import ToolExecutor
from agent_runtime.services.tool_registry import ToolRegistry


ALL_TOOLS = ["read_file", "write_file", "list_files", "search_files", "spawn_agent"]


@pytest.fixture
def workspace(tmp_path):
    """Empty workspace root."""
    root = tmp_path / "workspace"
    root.mkdir()
    return root


@pytest.fixture
def governance_schema():
    """Packaged default governance rules."""
    return load_governance_schema()


@pytest.fixture
def role_directory():
    """Role lookup with writer and read-only roles."""
    return StaticRoleDirectory.from_mapping({
        "impl": ALL_TOOLS,
        "control": ALL_TOOLS,
        "review": ["read_file", "list_files", "search_files"],
    })


@pytest.fixture
def registry():
    """Registry with the built-in tools."""
    return ToolRegistry()


@pytest.fixture
def gate(registry, role_directory, governance_schema):
    """Governance gate without a lock checker."""
    return GovernanceGate(registry, role_directory, governance_schema)


@pytest.fixture
def executor(registry):
    """Executor with the built-in handlers."""
    return ToolExecutor(registry)


@pytest.fixture
def session_store(tmp_path):
    """Session store in a temporary directory."""
    return SessionStore(tmp_path / "sessions")


@pytest.fixture
def audit_entries() -> List[AuditLogEntry]:
    """Collects entries passed to the audit callback."""
    return []


@pytest.fixture
def execution_context(workspace, audit_entries):
    """Plain execution context for role impl with a recording audit callback."""

    async def record(entry: AuditLogEntry) -> None:
        audit_entries.append(entry)

    return ExecutionContext(role="impl", workspace_root=workspace, chain_id="CHAIN-001", audit_log=record)
