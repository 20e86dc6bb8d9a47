"""Governance gate: the ordered validation pipeline for tool calls.

Stages run in strict order and the first denial wins:

1. existence: the tool is registered
2. role permission: the role exists and permits the tool, and spawn_agent
   requests respect the spawn-escalation rule
3. file-path policy: deny globs, then allow globs, default deny
4. lock conflict: the path is not locked by another chain
"""

import logging
from typing import List, Optional, Sequence

from agent_runtime.lib.globs import escapes_root, first_match, normalize_path
from agent_runtime.lib.logging_config import SecurityEventLogger
from agent_runtime.lib.observability import get_tracer
from agent_runtime.models.governance import (
    GovernanceAction,
    GovernanceSchema,
    LockCheckResult,
    ValidationResult,
)
from agent_runtime.models.message import ToolCall
from agent_runtime.models.spawn import SpawnPolicy, can_spawn_role
from agent_runtime.services.interfaces import LockChecker, RoleLookup
from agent_runtime.services.tool_registry import ToolRegistry


logger = logging.getLogger(__name__)

__all__ = ["GovernanceGate", "can_spawn_role"]


class GovernanceGate:
    """Validates proposed tool calls against roles, file rules and locks."""

    def __init__(
        self,
        registry: ToolRegistry,
        role_lookup: RoleLookup,
        schema: Optional[GovernanceSchema] = None,
        lock_checker: Optional[LockChecker] = None,
        spawn_policy: Optional[SpawnPolicy] = None
    ):
        """Initialize the gate.

        Args:
            registry: Tool catalog
            role_lookup: Resolves role ids to permitted tools
            schema: Per-role file rules; without one every path is denied
            lock_checker: Optional lock collaborator for write conflicts
            spawn_policy: Recognized and privileged roles for spawn_agent; the
                same policy object the execution context carries
        """
        self.registry = registry
        self.role_lookup = role_lookup
        self.schema = schema or GovernanceSchema()
        self.lock_checker = lock_checker
        self.spawn_policy = spawn_policy or SpawnPolicy()
        self.security_log = SecurityEventLogger()
        self.logger = logging.getLogger(__name__)

    async def validate(self, tool_call: ToolCall, role_id: str, chain_id: Optional[str] = None) -> ValidationResult:
        """Run the full pipeline for one tool call."""
        tracer = get_tracer(__name__)
        with tracer.start_as_current_span(
            "governance.validate",
            attributes={"tool.name": tool_call.name, "governance.role": role_id}
        ) as span:
            result = await self._validate(tool_call, role_id, chain_id)
            span.set_attribute("governance.allowed", result.allowed)

        path = tool_call.arguments.get("path")
        self.security_log.log_governance_decision(
            tool=tool_call.name,
            role=role_id,
            allowed=result.allowed,
            reason=result.reason,
            path=path if isinstance(path, str) else None,
            chain_id=chain_id
        )
        return result

    async def _validate(self, tool_call: ToolCall, role_id: str, chain_id: Optional[str]) -> ValidationResult:
        tool = self.registry.get_tool(tool_call.name)
        if tool is None:
            return ValidationResult.deny(f"Unknown tool: {tool_call.name}")

        role = await self.role_lookup.get(role_id)
        if role is None:
            return ValidationResult.deny(f"Unknown role: {role_id}")
        if not role.permits(tool_call.name):
            return ValidationResult.deny(f"Tool {tool_call.name} is not available to {role_id} role")

        if tool_call.name == "spawn_agent":
            target = tool_call.arguments.get("role")
            if target in self.spawn_policy.recognized_roles and not self.can_spawn(role_id, target):
                return ValidationResult.deny(f"Role {role_id} cannot spawn higher-privilege role {target}")

        path = tool_call.arguments.get("path")
        if not tool.is_file_write or not isinstance(path, str) or not path:
            return ValidationResult.allow()

        normalized = normalize_path(path)
        path_result = self.validate_file_path(normalized, role_id, GovernanceAction.MODIFY.value)
        if not path_result.allowed:
            return path_result

        if self.lock_checker is not None:
            lock = await self.check_locks(normalized, chain_id)
            if not lock.available:
                return ValidationResult.deny(f"File {normalized} is locked by chain {lock.locked_by}")

        return ValidationResult.allow()

    def validate_file_path(self, path: str, role_id: str, action: str = GovernanceAction.MODIFY.value) -> ValidationResult:
        """Check a path against the role's deny rules, then its allow rules."""
        if escapes_root(path):
            return ValidationResult.deny(f"Role {role_id} cannot {action} {path} - path is outside the workspace")

        normalized = normalize_path(path)
        rules = self.schema.rules_for(role_id)
        if rules is None:
            return ValidationResult.deny(
                f"Role {role_id} cannot {action} {normalized} - no governance rules defined for role"
            )

        for rule in rules.deny:
            if rule.applies_to(action) and first_match(normalized, [rule.pattern]):
                reason = f"Role {role_id} cannot {action} {normalized} - matches denied pattern {rule.pattern}"
                if rule.reason:
                    reason = f"{reason}: {rule.reason}"
                return ValidationResult.deny(reason)

        allow_patterns = [rule.pattern for rule in rules.allow if rule.applies_to(action)]
        if first_match(normalized, allow_patterns) is None:
            return ValidationResult.deny(
                f"Role {role_id} cannot {action} {normalized} - does not match any allowed pattern"
            )

        return ValidationResult.allow()

    async def check_locks(self, path: str, chain_id: Optional[str] = None) -> LockCheckResult:
        """Report whether a path is free for the given chain."""
        if self.lock_checker is None:
            return LockCheckResult(available=True)

        status = await self.lock_checker.is_file_locked(normalize_path(path))
        if status.locked and (status.chain_id is None or status.chain_id != chain_id):
            return LockCheckResult(available=False, locked_by=status.chain_id or "unknown")
        return LockCheckResult(available=True)

    async def validate_batch(
        self,
        tool_calls: Sequence[ToolCall],
        role_id: str,
        chain_id: Optional[str] = None
    ) -> List[ValidationResult]:
        """Validate several calls in order, for pre-flight checks."""
        return [await self.validate(call, role_id, chain_id) for call in tool_calls]

    async def all_allowed(
        self,
        tool_calls: Sequence[ToolCall],
        role_id: str,
        chain_id: Optional[str] = None
    ) -> bool:
        results = await self.validate_batch(tool_calls, role_id, chain_id)
        return all(result.allowed for result in results)

    def can_spawn(self, current_role: str, target_role: str) -> bool:
        """Spawn-escalation rule for the spawn_agent capability."""
        return can_spawn_role(current_role, target_role, self.spawn_policy.privileged_roles)
