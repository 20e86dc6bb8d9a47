"""Nested session spawning models."""

from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field, field_validator


DEFAULT_RECOGNIZED_ROLES = [
    "impl",
    "design",
    "review",
    "ideation",
    "commit",
    "orchestration",
    "control",
]

DEFAULT_PRIVILEGED_ROLES = ["control", "orchestration"]

DEFAULT_MAX_NESTING_DEPTH = 2


class SpawnPolicy(BaseModel):
    """Which roles may be spawned, who may escalate, and how deep."""

    recognized_roles: List[str] = Field(default_factory=lambda: list(DEFAULT_RECOGNIZED_ROLES))
    privileged_roles: List[str] = Field(default_factory=lambda: list(DEFAULT_PRIVILEGED_ROLES))
    max_nesting_depth: int = Field(default=DEFAULT_MAX_NESTING_DEPTH, ge=0)

    @field_validator("privileged_roles")
    def validate_privileged_recognized(cls, v, info):
        """Privileged roles must also be recognized roles."""
        recognized = set(info.data.get("recognized_roles", []))
        unknown = [role for role in v if role not in recognized]
        if unknown:
            raise ValueError(f"Privileged roles are not recognized roles: {unknown}")
        return v


class ChildTokenUsage(BaseModel):
    input: int = Field(default=0, ge=0)
    output: int = Field(default=0, ge=0)


class ChildSessionRequest(BaseModel):
    """Arguments handed to the spawn callback."""

    role: str
    role_id: str
    chain_id: Optional[str] = None
    task_id: Optional[str] = None
    context: Optional[str] = Field(None, description="Extra instructions for the child")
    parent_session_id: Optional[str] = None
    nesting_depth: int = Field(default=1, ge=1, description="Depth the child will run at")


class ChildSessionResult(BaseModel):
    """Result of a completed child session run."""

    success: bool
    session_id: str
    iterations: int = Field(default=0, ge=0)
    tokens_used: ChildTokenUsage = Field(default_factory=ChildTokenUsage)
    summary: Optional[str] = None
    error: Optional[str] = None

    def to_tool_data(self, role: str) -> Dict[str, Any]:
        data = {
            "child_session_id": self.session_id,
            "iterations": self.iterations,
            "tokens_used": self.tokens_used.model_dump(),
            "summary": self.summary,
            "role": role,
        }
        if self.error:
            data["error"] = self.error
        return data


def can_spawn_role(current_role: str, target_role: str, privileged_roles: Iterable[str]) -> bool:
    """Privileged coordinator roles may spawn any role; others only their own."""
    if current_role in set(privileged_roles):
        return True
    return current_role == target_role
