"""Data models for the agent runtime."""

from .audit_record import AuditLogEntry, AuditResult, GovernanceDecision
from .cost import CostLimits, CostSnapshot, LimitCheckResult, ModelPricing
from .event import RuntimeEvent
from .governance import (
    FileRule,
    GovernanceAction,
    GovernanceSchema,
    LockCheckResult,
    LockStatus,
    RoleGovernanceRules,
    ValidationResult,
)
from .message import ChatResponse, Message, MessageRole, StopReason, TokenUsage, ToolCall
from .role import Role
from .session_data import (
    SessionData,
    SessionError,
    SessionOutcome,
    SessionStatus,
    SessionSummary,
    SessionTokenUsage,
    SessionToolCall,
)
from .spawn import ChildSessionRequest, ChildSessionResult, SpawnPolicy
from .tool import ToolCategory, ToolDefinition, ToolParameterProperty, ToolParameterSchema, ToolResult

__all__ = [
    "AuditLogEntry",
    "AuditResult",
    "ChatResponse",
    "ChildSessionRequest",
    "ChildSessionResult",
    "CostLimits",
    "CostSnapshot",
    "FileRule",
    "GovernanceAction",
    "GovernanceDecision",
    "GovernanceSchema",
    "LimitCheckResult",
    "LockCheckResult",
    "LockStatus",
    "Message",
    "MessageRole",
    "ModelPricing",
    "Role",
    "RoleGovernanceRules",
    "RuntimeEvent",
    "SessionData",
    "SessionError",
    "SessionOutcome",
    "SessionStatus",
    "SessionSummary",
    "SessionTokenUsage",
    "SessionToolCall",
    "SpawnPolicy",
    "StopReason",
    "TokenUsage",
    "ToolCall",
    "ToolCategory",
    "ToolDefinition",
    "ToolParameterProperty",
    "ToolParameterSchema",
    "ToolResult",
    "ValidationResult",
]
