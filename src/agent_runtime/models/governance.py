"""Governance schema, validation result, and lock models."""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class GovernanceAction(str, Enum):
    """File mutation actions a governance rule can cover."""

    CREATE = "create"
    MODIFY = "modify"
    DELETE = "delete"


ALL_ACTIONS = [action.value for action in GovernanceAction]


class FileRule(BaseModel):
    """A glob pattern with the actions it covers and an optional reason."""

    pattern: str = Field(..., min_length=1, description="Glob pattern relative to the workspace root")
    actions: List[GovernanceAction] = Field(default_factory=lambda: list(ALL_ACTIONS))
    reason: Optional[str] = Field(None, description="Why the rule exists")

    class Config:
        """Pydantic configuration."""

        use_enum_values = True

    @field_validator("pattern")
    def validate_pattern(cls, v):
        """Patterns are matched against paths without a leading separator."""
        return v.strip().lstrip("/")

    def applies_to(self, action: str) -> bool:
        return action in self.actions


class RoleGovernanceRules(BaseModel):
    """Allow and deny file rules for one role."""

    allow: List[FileRule] = Field(default_factory=list)
    deny: List[FileRule] = Field(default_factory=list)


class GovernanceSchema(BaseModel):
    """Per-role file governance rules, keyed by role id."""

    roles: Dict[str, RoleGovernanceRules] = Field(default_factory=dict)

    def rules_for(self, role_id: str) -> Optional[RoleGovernanceRules]:
        return self.roles.get(role_id)


class ValidationResult(BaseModel):
    """Outcome of a governance check. ``reason`` is present iff denied."""

    allowed: bool
    reason: Optional[str] = None

    @model_validator(mode="after")
    def validate_reason(self):
        if self.allowed and self.reason is not None:
            raise ValueError("allowed results carry no reason")
        if not self.allowed and not self.reason:
            raise ValueError("denied results must carry a reason")
        return self

    @classmethod
    def allow(cls) -> "ValidationResult":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> "ValidationResult":
        return cls(allowed=False, reason=reason)


class LockStatus(BaseModel):
    """Answer from the lock collaborator for a single path."""

    locked: bool = False
    chain_id: Optional[str] = None


class LockCheckResult(BaseModel):
    """Whether a path is available to the current chain."""

    available: bool
    locked_by: Optional[str] = None
