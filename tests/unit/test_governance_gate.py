"""Unit tests for the governance gate pipeline."""

from typing import Dict, Optional

import pytest

from agent_runtime.models.governance import (
    FileRule,
    GovernanceSchema,
    LockStatus,
    RoleGovernanceRules,
)
from agent_runtime.models.message import ToolCall
from agent_runtime.models.spawn import SpawnPolicy
from agent_runtime.services.governance_gate import GovernanceGate
from agent_runtime.services.interfaces import LockChecker


class FakeLockChecker:
    """Lock collaborator backed by a path -> chain mapping."""

    def __init__(self, locks: Dict[str, Optional[str]]):
        self.locks = locks
        self.queried = []

    async def is_file_locked(self, path: str) -> LockStatus:
        self.queried.append(path)
        if path in self.locks:
            return LockStatus(locked=True, chain_id=self.locks[path])
        return LockStatus(locked=False)


def write_call(path: str) -> ToolCall:
    return ToolCall(id="call-1", name="write_file", arguments={"path": path, "content": "x"})


class TestPipelineOrder:
    """Existence and role stages."""

    @pytest.mark.asyncio
    async def test_unknown_tool(self, gate):
        result = await gate.validate(ToolCall(id="c", name="delete_everything"), "impl")
        assert not result.allowed
        assert result.reason == "Unknown tool: delete_everything"

    @pytest.mark.asyncio
    async def test_unknown_role(self, gate):
        result = await gate.validate(ToolCall(id="c", name="read_file", arguments={"path": "a"}), "ghost")
        assert result.reason == "Unknown role: ghost"

    @pytest.mark.asyncio
    async def test_tool_not_permitted_for_role(self, gate):
        result = await gate.validate(write_call("packages/core/src/index.ts"), "review")
        assert result.reason == "Tool write_file is not available to review role"

    @pytest.mark.asyncio
    async def test_unknown_tool_checked_before_role(self, gate):
        result = await gate.validate(ToolCall(id="c", name="nope"), "ghost")
        assert result.reason == "Unknown tool: nope"

    @pytest.mark.asyncio
    async def test_read_tools_skip_path_stage(self, gate):
        call = ToolCall(id="c", name="read_file", arguments={"path": "docs/tasks/todo/x.md"})
        result = await gate.validate(call, "impl")
        assert result.allowed
        assert result.reason is None

    @pytest.mark.asyncio
    async def test_spawn_agent_skips_path_stage(self, gate):
        call = ToolCall(id="c", name="spawn_agent", arguments={"role": "impl"})
        assert (await gate.validate(call, "impl")).allowed


class TestFilePathPolicy:
    """Deny-first glob evaluation with default deny."""

    @pytest.mark.asyncio
    async def test_impl_cannot_write_task_files(self, gate):
        result = await gate.validate(write_call("docs/tasks/todo/x.md"), "impl")

        assert not result.allowed
        assert "docs/tasks/**" in result.reason
        assert result.reason.startswith("Role impl cannot modify docs/tasks/todo/x.md - matches denied pattern")

    @pytest.mark.asyncio
    async def test_control_can_write_task_files(self, gate):
        result = await gate.validate(write_call("docs/tasks/todo/x.md"), "control")
        assert result.allowed

    @pytest.mark.asyncio
    async def test_impl_can_write_source(self, gate):
        assert (await gate.validate(write_call("packages/core/src/lib/util.ts"), "impl")).allowed

    @pytest.mark.asyncio
    async def test_control_cannot_write_source(self, gate):
        result = await gate.validate(write_call("packages/core/src/index.ts"), "control")
        assert "matches denied pattern packages/**/src/**/*.ts" in result.reason

    @pytest.mark.asyncio
    async def test_unmatched_path_is_denied(self, gate):
        result = await gate.validate(write_call("scripts/deploy.sh"), "impl")
        assert result.reason == "Role impl cannot modify scripts/deploy.sh - does not match any allowed pattern"

    @pytest.mark.asyncio
    async def test_role_without_rules_is_denied(self, registry, role_directory):
        gate = GovernanceGate(registry, role_directory, GovernanceSchema())
        result = await gate.validate(write_call("anything.txt"), "impl")
        assert result.reason == "Role impl cannot modify anything.txt - no governance rules defined for role"

    def test_deny_takes_precedence_over_allow(self, registry, role_directory):
        schema = GovernanceSchema(roles={
            "impl": RoleGovernanceRules(
                allow=[FileRule(pattern="**")],
                deny=[FileRule(pattern="secrets/**", reason="credentials")],
            )
        })
        gate = GovernanceGate(registry, role_directory, schema)

        result = gate.validate_file_path("secrets/key.pem", "impl")

        assert not result.allowed
        assert result.reason.endswith("matches denied pattern secrets/**: credentials")
        assert gate.validate_file_path("src/main.py", "impl").allowed

    def test_paths_are_normalized(self, gate):
        assert not gate.validate_file_path("./docs/tasks/a.md", "impl").allowed
        assert not gate.validate_file_path("docs\\tasks\\a.md", "impl").allowed
        assert gate.validate_file_path("/packages/core/src/a.ts", "impl").allowed

    @pytest.mark.asyncio
    async def test_parent_segments_cannot_reach_denied_directory(self, gate):
        call = write_call("packages/a/src/../../../docs/tasks/evil.ts")

        result = await gate.validate(call, "impl")

        assert not result.allowed
        assert "matches denied pattern docs/tasks/**" in result.reason
        assert "cannot modify docs/tasks/evil.ts" in result.reason

    @pytest.mark.asyncio
    async def test_parent_segments_do_not_match_readme_rule(self, gate):
        result = await gate.validate(write_call("x/../docs/tasks/README.md"), "impl")
        assert not result.allowed
        assert "docs/tasks/**" in result.reason

    @pytest.mark.asyncio
    async def test_path_outside_workspace_is_denied(self, gate):
        result = await gate.validate(write_call("packages/../../outside.ts"), "impl")
        assert not result.allowed
        assert result.reason.endswith("path is outside the workspace")

    def test_dot_segments_collapse_before_matching(self, gate):
        assert gate.validate_file_path("packages/core/./src/lib/../a.ts", "impl").allowed

    def test_rule_limited_to_actions(self, registry, role_directory):
        schema = GovernanceSchema(roles={
            "impl": RoleGovernanceRules(allow=[FileRule(pattern="notes/**", actions=["create"])])
        })
        gate = GovernanceGate(registry, role_directory, schema)

        assert gate.validate_file_path("notes/a.md", "impl", "create").allowed
        assert not gate.validate_file_path("notes/a.md", "impl", "modify").allowed


class TestLocks:
    """Lock conflict stage."""

    @pytest.mark.asyncio
    async def test_locked_by_other_chain(self, registry, role_directory, governance_schema):
        locks = FakeLockChecker({"packages/core/src/a.ts": "CHAIN-002"})
        gate = GovernanceGate(registry, role_directory, governance_schema, lock_checker=locks)

        result = await gate.validate(write_call("packages/core/src/a.ts"), "impl", chain_id="CHAIN-001")

        assert result.reason == "File packages/core/src/a.ts is locked by chain CHAIN-002"

    @pytest.mark.asyncio
    async def test_locked_by_same_chain(self, registry, role_directory, governance_schema):
        locks = FakeLockChecker({"packages/core/src/a.ts": "CHAIN-001"})
        gate = GovernanceGate(registry, role_directory, governance_schema, lock_checker=locks)

        result = await gate.validate(write_call("packages/core/src/a.ts"), "impl", chain_id="CHAIN-001")

        assert result.allowed

    @pytest.mark.asyncio
    async def test_lock_without_holder_is_a_conflict(self, registry, role_directory, governance_schema):
        gate = GovernanceGate(
            registry, role_directory, governance_schema,
            lock_checker=FakeLockChecker({"packages/core/src/a.ts": None})
        )
        lock = await gate.check_locks("packages/core/src/a.ts", "CHAIN-001")
        assert not lock.available
        assert lock.locked_by == "unknown"

    @pytest.mark.asyncio
    async def test_path_denial_short_circuits_lock_check(self, registry, role_directory, governance_schema):
        locks = FakeLockChecker({})
        gate = GovernanceGate(registry, role_directory, governance_schema, lock_checker=locks)

        await gate.validate(write_call("docs/adr/0001.md"), "impl")

        assert locks.queried == []

    @pytest.mark.asyncio
    async def test_lock_checked_on_normalized_path(self, registry, role_directory, governance_schema):
        locks = FakeLockChecker({"packages/core/src/a.ts": "OTHER"})
        gate = GovernanceGate(registry, role_directory, governance_schema, lock_checker=locks)

        result = await gate.validate(write_call("packages/core/src/lib/../a.ts"), "impl", chain_id="CHAIN-001")

        assert result.reason == "File packages/core/src/a.ts is locked by chain OTHER"
        assert locks.queried == ["packages/core/src/a.ts"]

    @pytest.mark.asyncio
    async def test_no_lock_checker_means_available(self, gate):
        assert (await gate.check_locks("anything")).available

    def test_fake_satisfies_protocol(self):
        assert isinstance(FakeLockChecker({}), LockChecker)


class TestBatchAndSpawn:
    """Batch validation and the spawn escalation rule."""

    @pytest.mark.asyncio
    async def test_batch_preserves_order(self, gate):
        calls = [
            write_call("packages/core/src/a.ts"),
            write_call("docs/tasks/a.md"),
            ToolCall(id="c", name="list_files"),
        ]
        results = await gate.validate_batch(calls, "impl")

        assert [r.allowed for r in results] == [True, False, True]
        assert not await gate.all_allowed(calls, "impl")
        assert await gate.all_allowed([calls[0], calls[2]], "impl")

    def test_can_spawn(self, gate):
        assert gate.can_spawn("impl", "impl")
        assert gate.can_spawn("control", "impl")
        assert not gate.can_spawn("impl", "review")
        assert not gate.can_spawn("review", "control")

    @pytest.mark.asyncio
    async def test_spawn_escalation_is_denied(self, gate):
        call = ToolCall(id="c", name="spawn_agent", arguments={"role": "review"})
        result = await gate.validate(call, "impl")
        assert result.reason == "Role impl cannot spawn higher-privilege role review"

    @pytest.mark.asyncio
    async def test_unrecognized_target_is_left_to_the_tool(self, gate):
        call = ToolCall(id="c", name="spawn_agent", arguments={"role": "wizard"})
        assert (await gate.validate(call, "impl")).allowed

    @pytest.mark.asyncio
    async def test_privileged_roles_come_from_spawn_policy(self, registry, role_directory, governance_schema):
        policy = SpawnPolicy(recognized_roles=["impl", "review", "control"], privileged_roles=["impl"])
        gate = GovernanceGate(registry, role_directory, governance_schema, spawn_policy=policy)

        assert gate.can_spawn("impl", "review")
        assert not gate.can_spawn("control", "impl")
        call = ToolCall(id="c", name="spawn_agent", arguments={"role": "review"})
        assert (await gate.validate(call, "impl")).allowed
