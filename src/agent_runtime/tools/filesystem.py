"""File system tools confined to the workspace root."""

import fnmatch
import os
from pathlib import Path
from typing import Any, Dict, List

import aiofiles
import aiofiles.os

from agent_runtime.models.tool import ToolResult
from agent_runtime.services.context import ExecutionContext


BINARY_PROBE_BYTES = 8192

IGNORED_DIRECTORIES = frozenset({"node_modules", ".git", "dist", "build", "coverage"})


def is_binary(data: bytes) -> bool:
    """Treat content with a NUL byte near the start as binary."""
    return b"\x00" in data[:BINARY_PROBE_BYTES]


async def read_file(params: Dict[str, Any], context: ExecutionContext) -> ToolResult:
    """Read a text file with line numbers, optionally a window of it."""
    path = params.get("path")
    if not path:
        return ToolResult.fail("path is required")

    target = context.resolve_path(path)
    if not target.exists():
        return ToolResult.fail(f"File not found: {path}")
    if not target.is_file():
        return ToolResult.fail(f"Path is not a file: {path}")

    async with aiofiles.open(target, "rb") as f:
        raw = await f.read()

    if is_binary(raw):
        return ToolResult.fail(f"Cannot read binary file: {path}")

    lines = raw.decode("utf-8", errors="replace").splitlines()
    total_lines = len(lines)

    start_line = max(int(params.get("offset") or 1), 1)
    limit = params.get("limit")
    end_index = total_lines if limit is None else min(start_line - 1 + max(int(limit), 0), total_lines)
    selected = lines[start_line - 1:end_index]

    content = "\n".join(f"{number:>6}→{line}" for number, line in enumerate(selected, start=start_line))

    return ToolResult.ok({
        "path": context.relative_path(target),
        "content": content,
        "total_lines": total_lines,
        "start_line": start_line,
        "end_line": start_line + len(selected) - 1 if selected else start_line - 1,
        "lines_returned": len(selected),
    })


async def write_file(params: Dict[str, Any], context: ExecutionContext) -> ToolResult:
    """Write a file, creating parent directories as needed."""
    path = params.get("path")
    content = params.get("content")
    if not path:
        return ToolResult.fail("path is required")
    if not isinstance(content, str):
        return ToolResult.fail("content must be a string")

    target = context.resolve_path(path)
    if target.is_dir():
        return ToolResult.fail(f"Path is a directory: {path}")

    existed = target.exists()
    if existed and params.get("create_only"):
        return ToolResult.fail(f"File already exists: {path}. Use create_only: false to overwrite.")

    await aiofiles.os.makedirs(target.parent, exist_ok=True)
    encoded = content.encode("utf-8")
    async with aiofiles.open(target, "wb") as f:
        await f.write(encoded)

    return ToolResult.ok({
        "path": context.relative_path(target),
        "action": "modified" if existed else "created",
        "bytes": len(encoded),
    })


def _describe_entry(entry_path: Path, name: str) -> Dict[str, Any]:
    if entry_path.is_dir():
        return {"name": name, "type": "directory", "items": len(os.listdir(entry_path))}
    return {"name": name, "type": "file", "size": entry_path.stat().st_size}


async def list_files(params: Dict[str, Any], context: ExecutionContext) -> ToolResult:
    """List a directory, directories first and then by name."""
    path = params.get("path") or "."
    pattern = params.get("pattern")
    recursive = bool(params.get("recursive", False))

    target = context.resolve_path(path)
    if not target.exists():
        return ToolResult.fail(f"Directory not found: {path}")
    if not target.is_dir():
        return ToolResult.fail(f"Path is not a directory: {path}")

    entries: List[Dict[str, Any]] = []
    if recursive:
        for root, dirnames, filenames in os.walk(target):
            dirnames[:] = sorted(d for d in dirnames if d not in IGNORED_DIRECTORIES)
            root_path = Path(root)
            for name in dirnames + sorted(filenames):
                entry_path = root_path / name
                relative = entry_path.relative_to(target).as_posix()
                if pattern and not fnmatch.fnmatch(name, pattern):
                    continue
                entries.append(_describe_entry(entry_path, relative))
    else:
        for entry_path in target.iterdir():
            if pattern and not fnmatch.fnmatch(entry_path.name, pattern):
                continue
            entries.append(_describe_entry(entry_path, entry_path.name))

    entries.sort(key=lambda entry: (entry["type"] != "directory", entry["name"]))

    return ToolResult.ok({
        "path": context.relative_path(target),
        "entries": entries,
        "count": len(entries),
    })
