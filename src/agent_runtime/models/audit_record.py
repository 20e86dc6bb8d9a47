"""Audit log entry model for file-affecting tool calls."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class AuditResult(str, Enum):
    """Outcome recorded for an audited tool call."""

    SUCCESS = "success"
    ERROR = "error"
    DENIED = "denied"


class GovernanceDecision(str, Enum):
    """Governance verdict recorded for an audited tool call."""

    PASS = "pass"
    DENY = "deny"


class AuditLogEntry(BaseModel):
    """
    One line of a session's audit log.

    ``timestamp`` and ``session`` are stamped by the audit logger when the
    entry is written. Tool-specific fields are only set for the tools that
    report them.
    """

    timestamp: Optional[datetime] = Field(None, description="When the entry was written")
    session: Optional[str] = Field(None, description="Owning session id")
    tool: str = Field(..., description="Tool name")
    path: Optional[str] = Field(None, description="Path the tool operated on")
    result: AuditResult = Field(..., description="Tool outcome")
    governance: GovernanceDecision = Field(..., description="Governance verdict")
    reason: Optional[str] = Field(None, description="Denial or error reason")

    lines: Optional[int] = Field(None, ge=0, description="Lines returned by a read")
    action: Optional[str] = Field(None, description="created or modified, for writes")
    bytes: Optional[int] = Field(None, ge=0, description="Bytes written")
    count: Optional[int] = Field(None, ge=0, description="Entries returned by a listing")
    matches: Optional[int] = Field(None, ge=0, description="Matches found by a search")

    class Config:
        """Pydantic configuration."""

        use_enum_values = True

    def to_record(self) -> Dict[str, Any]:
        """Serialize for the JSONL stream, omitting unset fields."""
        return self.model_dump(mode="json", exclude_none=True)
