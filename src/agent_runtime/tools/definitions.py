"""Definitions of the built-in tools exposed to models."""

from typing import Dict, List

from agent_runtime.models.tool import ToolCategory, ToolDefinition, ToolParameterProperty, ToolParameterSchema


READ_FILE = ToolDefinition(
    name="read_file",
    description="Read the contents of a file in the workspace. Output lines are prefixed with line numbers.",
    parameters=ToolParameterSchema(
        properties={
            "path": ToolParameterProperty(type="string", description="File path relative to the workspace root"),
            "offset": ToolParameterProperty(type="integer", description="Line number to start reading from (1-based)"),
            "limit": ToolParameterProperty(type="integer", description="Maximum number of lines to return"),
        },
        required=["path"],
    ),
    category=ToolCategory.FILESYSTEM,
    mutates=False,
)

WRITE_FILE = ToolDefinition(
    name="write_file",
    description="Create or overwrite a file in the workspace. Parent directories are created as needed.",
    parameters=ToolParameterSchema(
        properties={
            "path": ToolParameterProperty(type="string", description="File path relative to the workspace root"),
            "content": ToolParameterProperty(type="string", description="Full file content to write"),
            "create_only": ToolParameterProperty(type="boolean", description="Fail if the file already exists"),
        },
        required=["path", "content"],
    ),
    category=ToolCategory.FILESYSTEM,
    mutates=True,
)

LIST_FILES = ToolDefinition(
    name="list_files",
    description="List files and directories in a workspace directory.",
    parameters=ToolParameterSchema(
        properties={
            "path": ToolParameterProperty(type="string", description="Directory to list (defaults to the workspace root)"),
            "pattern": ToolParameterProperty(type="string", description="Glob pattern entry names must match"),
            "recursive": ToolParameterProperty(type="boolean", description="List subdirectories recursively"),
        },
    ),
    category=ToolCategory.FILESYSTEM,
    mutates=False,
)

SEARCH_FILES = ToolDefinition(
    name="search_files",
    description="Search file contents with a case-insensitive regular expression.",
    parameters=ToolParameterSchema(
        properties={
            "query": ToolParameterProperty(type="string", description="Regular expression to search for"),
            "path": ToolParameterProperty(type="string", description="Directory to search (defaults to the workspace root)"),
            "include": ToolParameterProperty(type="string", description="Glob of files to include, e.g. **/*.py"),
            "exclude": ToolParameterProperty(type="string", description="Glob of files to exclude"),
        },
        required=["query"],
    ),
    category=ToolCategory.SEARCH,
    mutates=False,
)

SPAWN_AGENT = ToolDefinition(
    name="spawn_agent",
    description=(
        "Spawn a child agent session with the given role and wait for it to finish. "
        "Returns the child's summary, iteration count and token usage."
    ),
    parameters=ToolParameterSchema(
        properties={
            "role": ToolParameterProperty(type="string", description="Role for the child session"),
            "chain_id": ToolParameterProperty(type="string", description="Chain to work on (defaults to the current chain)"),
            "task_id": ToolParameterProperty(type="string", description="Task to work on (defaults to the current task)"),
            "context": ToolParameterProperty(type="string", description="Additional instructions for the child"),
        },
        required=["role"],
    ),
    category=ToolCategory.SESSION,
    mutates=True,
)

BUILTIN_TOOLS: List[ToolDefinition] = [READ_FILE, WRITE_FILE, LIST_FILES, SEARCH_FILES, SPAWN_AGENT]

BUILTIN_TOOLS_BY_NAME: Dict[str, ToolDefinition] = {tool.name: tool for tool in BUILTIN_TOOLS}
