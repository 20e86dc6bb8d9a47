"""Provider-neutral conversation models.

These are the shapes every provider adapter consumes and produces; the
vendor wire formats never leak past the adapter boundary.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


class MessageRole(str, Enum):
    """Conversation message role enumeration."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class StopReason(str, Enum):
    """Normalized reason a model stopped generating."""

    END_TURN = "end_turn"
    TOOL_USE = "tool_use"
    MAX_TOKENS = "max_tokens"


class ToolCall(BaseModel):
    """A structured request from a model to invoke a named tool."""

    id: str = Field(..., description="Call identifier, unique within a response")
    name: str = Field(..., description="Tool name")
    arguments: Dict[str, Any] = Field(default_factory=dict, description="Tool arguments")


class Message(BaseModel):
    """A single conversation message."""

    role: MessageRole = Field(..., description="Message role")
    content: str = Field(default="", description="Text content")
    tool_call_id: Optional[str] = Field(None, description="Call this tool message answers")
    tool_name: Optional[str] = Field(None, description="Tool that produced this result")
    tool_calls: List[ToolCall] = Field(default_factory=list, description="Calls issued by an assistant message")

    class Config:
        """Pydantic configuration."""

        use_enum_values = True

    @model_validator(mode="after")
    def validate_tool_reference(self):
        """Tool results must reference the call they answer."""
        if self.role == MessageRole.TOOL and not self.tool_call_id:
            raise ValueError("tool messages must carry tool_call_id")
        return self

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=MessageRole.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def assistant(cls, content: str, tool_calls: Optional[List[ToolCall]] = None) -> "Message":
        return cls(role=MessageRole.ASSISTANT, content=content, tool_calls=tool_calls or [])

    @classmethod
    def tool(cls, content: str, tool_call_id: str, tool_name: Optional[str] = None) -> "Message":
        return cls(role=MessageRole.TOOL, content=content, tool_call_id=tool_call_id, tool_name=tool_name)


class TokenUsage(BaseModel):
    """Token counts reported by a provider for one completion."""

    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)


class ChatResponse(BaseModel):
    """Normalized completion returned by every provider adapter."""

    content: str = Field(default="", description="Display text with any tool envelopes removed")
    tool_calls: List[ToolCall] = Field(default_factory=list, description="Parsed tool calls")
    stop_reason: StopReason = Field(default=StopReason.END_TURN, description="Normalized stop reason")
    usage: TokenUsage = Field(default_factory=TokenUsage, description="Token usage")

    class Config:
        """Pydantic configuration."""

        use_enum_values = True

    @model_validator(mode="after")
    def tool_calls_imply_tool_use(self):
        """Parsed tool calls always mean the model wants tools run."""
        if self.tool_calls and self.stop_reason != StopReason.TOOL_USE:
            self.stop_reason = StopReason.TOOL_USE.value
        return self
