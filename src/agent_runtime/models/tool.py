"""Tool definition and result models."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class ToolCategory(str, Enum):
    """Tool category enumeration."""

    FILESYSTEM = "filesystem"
    SEARCH = "search"
    SESSION = "session"
    OTHER = "other"


# Categories whose executions leave an audit trail.
AUDITED_CATEGORIES = (ToolCategory.FILESYSTEM.value, ToolCategory.SEARCH.value)


class ToolParameterProperty(BaseModel):
    """JSON-schema description of a single tool parameter."""

    type: str = Field(..., description="JSON schema type")
    description: Optional[str] = Field(None, description="Parameter description")
    enum: Optional[List[str]] = Field(None, description="Allowed values")
    items: Optional[Dict[str, Any]] = Field(None, description="Item schema for arrays")


class ToolParameterSchema(BaseModel):
    """JSON-schema object describing a tool's parameters."""

    type: str = Field(default="object")
    properties: Dict[str, ToolParameterProperty] = Field(default_factory=dict)
    required: List[str] = Field(default_factory=list)

    @field_validator("required")
    def validate_required_known(cls, v, info):
        """Required parameters must be declared properties."""
        properties = info.data.get("properties", {})
        unknown = [name for name in v if name not in properties]
        if unknown:
            raise ValueError(f"Required parameters not declared: {unknown}")
        return v

    def to_json_schema(self) -> Dict[str, Any]:
        """Render as a plain JSON schema dictionary."""
        return self.model_dump(exclude_none=True)


class ToolDefinition(BaseModel):
    """Static description of a tool exposed to models."""

    name: str = Field(..., min_length=1, description="Globally unique tool name")
    description: str = Field(..., description="Description shown to the model")
    parameters: ToolParameterSchema = Field(default_factory=ToolParameterSchema)
    category: ToolCategory = Field(default=ToolCategory.OTHER)
    mutates: bool = Field(default=False, description="Whether the tool changes workspace state")

    class Config:
        """Pydantic configuration."""

        use_enum_values = True

    @property
    def is_audited(self) -> bool:
        return self.category in AUDITED_CATEGORIES

    @property
    def is_file_write(self) -> bool:
        """Mutating file system tool that names a target path."""
        return (
            self.mutates
            and self.category == ToolCategory.FILESYSTEM
            and "path" in self.parameters.properties
        )


class ToolResult(BaseModel):
    """Outcome of executing a tool."""

    success: bool = Field(..., description="Whether the tool succeeded")
    data: Optional[Any] = Field(None, description="Tool-specific result payload")
    error: Optional[str] = Field(None, description="Error message on failure")

    @classmethod
    def ok(cls, data: Any = None) -> "ToolResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, data: Any = None) -> "ToolResult":
        return cls(success=False, error=error, data=data)
