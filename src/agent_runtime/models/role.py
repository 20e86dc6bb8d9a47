"""Role model resolved through the role lookup collaborator."""

from typing import Optional, Set

from pydantic import BaseModel, Field


class Role(BaseModel):
    """A named permission profile granting access to a subset of tools."""

    id: str = Field(..., min_length=1, description="Opaque role identifier")
    tool_ids: Set[str] = Field(default_factory=set, description="Tools this role may call")
    name: Optional[str] = Field(None, description="Display name")
    description: Optional[str] = Field(None, description="Role description")

    def permits(self, tool_name: str) -> bool:
        return tool_name in self.tool_ids
