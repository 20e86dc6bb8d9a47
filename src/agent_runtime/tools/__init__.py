"""Built-in tool definitions and their implementations."""

from typing import Awaitable, Callable, Dict

from agent_runtime.models.tool import ToolResult
from agent_runtime.services.context import ExecutionContext

from .definitions import BUILTIN_TOOLS, BUILTIN_TOOLS_BY_NAME
from .filesystem import list_files, read_file, write_file
from .search import search_files
from .spawn_agent import spawn_agent


ToolHandler = Callable[[Dict, ExecutionContext], Awaitable[ToolResult]]

BUILTIN_HANDLERS: Dict[str, ToolHandler] = {
    "read_file": read_file,
    "write_file": write_file,
    "list_files": list_files,
    "search_files": search_files,
    "spawn_agent": spawn_agent,
}

__all__ = [
    "BUILTIN_HANDLERS",
    "BUILTIN_TOOLS",
    "BUILTIN_TOOLS_BY_NAME",
    "ToolHandler",
    "list_files",
    "read_file",
    "search_files",
    "spawn_agent",
    "write_file",
]
