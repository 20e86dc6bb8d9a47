"""Catalog of tool definitions and role-based tool visibility."""

import logging
from typing import Dict, Iterable, List, Optional

from agent_runtime.models.tool import ToolDefinition
from agent_runtime.services.interfaces import RoleLookup
from agent_runtime.tools.definitions import BUILTIN_TOOLS


logger = logging.getLogger(__name__)


class ToolRegistry:
    """Static map from tool name to definition.

    Permission questions are answered by resolving the role through an
    injected role lookup; the registry holds no role knowledge itself.
    """

    def __init__(self, tools: Optional[Iterable[ToolDefinition]] = None):
        self._tools: Dict[str, ToolDefinition] = {}
        for tool in BUILTIN_TOOLS if tools is None else tools:
            self.register_tool(tool)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def get_tool(self, name: str) -> Optional[ToolDefinition]:
        return self._tools.get(name)

    def has_tool(self, name: str) -> bool:
        return name in self._tools

    def all_tools(self) -> List[ToolDefinition]:
        return list(self._tools.values())

    def tool_names(self) -> List[str]:
        return list(self._tools)

    def register_tool(self, tool: ToolDefinition) -> None:
        """Register a tool, replacing any existing tool with the same name."""
        if tool.name in self._tools:
            logger.info(f"Replacing tool definition: {tool.name}")
        self._tools[tool.name] = tool

    async def tools_for_role(self, role_id: str, role_lookup: RoleLookup) -> List[ToolDefinition]:
        """Tools the role may call, in registry order; empty for unknown roles."""
        role = await role_lookup.get(role_id)
        if role is None:
            logger.warning(f"Role not found when listing tools: {role_id}")
            return []
        return [tool for name, tool in self._tools.items() if role.permits(name)]

    async def can_role_use_tool(self, role_id: str, tool_name: str, role_lookup: RoleLookup) -> bool:
        if tool_name not in self._tools:
            return False
        role = await role_lookup.get(role_id)
        return role is not None and role.permits(tool_name)
