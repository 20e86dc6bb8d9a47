"""Persisted session data model."""

import re
import secrets
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from agent_runtime.models.message import Message


class SessionStatus(str, Enum):
    """Session lifecycle status."""

    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"


class SessionOutcome(str, Enum):
    """How a session run ended."""

    SUCCESS = "success"
    FAILURE = "failure"
    INTERRUPTED = "interrupted"


TERMINAL_STATUSES = (SessionStatus.COMPLETED.value, SessionStatus.FAILED.value)

SESSION_ID_PATTERN = re.compile(r"session-\d{8}-\d{6}-[0-9a-f]{6}")


def generate_session_id(now: Optional[datetime] = None) -> str:
    """Generate a session id of the form session-YYYYMMDD-HHMMSS-xxxxxx."""
    now = now or datetime.now(timezone.utc)
    return f"session-{now.strftime('%Y%m%d-%H%M%S')}-{secrets.token_hex(3)}"


def is_valid_session_id(session_id: str) -> bool:
    return SESSION_ID_PATTERN.fullmatch(session_id) is not None


class SessionTokenUsage(BaseModel):
    """Cumulative token usage; ``total`` is always derived."""

    input: int = Field(default=0, ge=0)
    output: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def derive_total(self):
        self.total = self.input + self.output
        return self


class SessionToolCall(BaseModel):
    """One tool call as recorded in the session log."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    id: Optional[str] = Field(None, description="Provider call id")
    name: str
    params: Dict[str, Any] = Field(default_factory=dict)
    result: Dict[str, Any] = Field(default_factory=dict, description="Serialized ToolResult")
    governance_result: Dict[str, Any] = Field(default_factory=dict, description="Serialized ValidationResult")


class SessionError(BaseModel):
    """Failure details captured when a session fails."""

    message: str
    stack: Optional[str] = None
    recoverable: bool = False


class SessionData(BaseModel):
    """
    Full persisted record of one agent run.

    This is the document written to durable storage on every state change
    that matters for crash recovery.
    """

    id: str = Field(default_factory=generate_session_id, description="Immutable session id")
    role: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    chain_id: Optional[str] = None
    task_id: Optional[str] = None
    start_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    end_time: Optional[datetime] = None
    outcome: Optional[SessionOutcome] = None
    token_usage: SessionTokenUsage = Field(default_factory=SessionTokenUsage)
    messages: List[Message] = Field(default_factory=list)
    tool_calls: List[SessionToolCall] = Field(default_factory=list)
    parent_session_id: Optional[str] = None
    child_session_ids: List[str] = Field(default_factory=list)
    nesting_depth: int = Field(default=0, ge=0)
    status: SessionStatus = Field(default=SessionStatus.RUNNING)
    error: Optional[SessionError] = None
    last_turn_index: int = Field(default=0, ge=0)

    class Config:
        """Pydantic configuration."""

        use_enum_values = True

    @field_validator("id")
    def validate_id(cls, v):
        if not v.strip():
            raise ValueError("id cannot be empty")
        return v.strip()

    @model_validator(mode="after")
    def validate_nesting(self):
        """Root sessions sit at depth zero; children always name a parent."""
        if self.parent_session_id is None and self.nesting_depth != 0:
            raise ValueError("root sessions must have nesting_depth 0")
        if self.parent_session_id is not None and self.nesting_depth < 1:
            raise ValueError("child sessions must have nesting_depth >= 1")
        return self


class SessionSummary(BaseModel):
    """Listing view of a persisted session without its history."""

    id: str
    role: str
    status: str
    start_time: datetime
    end_time: Optional[datetime] = None
    total_tokens: int = 0
    chain_id: Optional[str] = None
    task_id: Optional[str] = None
    nesting_depth: int = 0
    parent_session_id: Optional[str] = None
