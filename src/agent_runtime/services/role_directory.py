"""Configuration-backed role lookup."""

import logging
from typing import Dict, Iterable, List, Mapping, Optional

from agent_runtime.lib.config import RoleConfig
from agent_runtime.models.role import Role


logger = logging.getLogger(__name__)


class StaticRoleDirectory:
    """Role lookup over a fixed set of roles, typically loaded from config."""

    def __init__(self, roles: Optional[Iterable[Role]] = None):
        self._roles: Dict[str, Role] = {role.id: role for role in roles or []}

    @classmethod
    def from_config(cls, roles: Mapping[str, RoleConfig]) -> "StaticRoleDirectory":
        """Build the directory from the ``roles`` configuration section."""
        return cls(
            Role(id=role_id, tool_ids=set(config.tool_ids), name=config.name, description=config.description)
            for role_id, config in roles.items()
        )

    @classmethod
    def from_mapping(cls, roles: Mapping[str, Iterable[str]]) -> "StaticRoleDirectory":
        """Build the directory from role id -> tool ids."""
        return cls(Role(id=role_id, tool_ids=set(tool_ids)) for role_id, tool_ids in roles.items())

    async def get(self, role_id: str) -> Optional[Role]:
        return self._roles.get(role_id)

    def add(self, role: Role) -> None:
        if role.id in self._roles:
            logger.info(f"Replacing role definition: {role.id}")
        self._roles[role.id] = role

    def role_ids(self) -> List[str]:
        return sorted(self._roles)
