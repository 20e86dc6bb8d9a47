"""Regex search across workspace files."""

import os
import re
from pathlib import Path
from typing import Any, Dict, List

import aiofiles

from agent_runtime.lib.globs import match_glob
from agent_runtime.models.tool import ToolResult
from agent_runtime.services.context import ExecutionContext
from agent_runtime.tools.filesystem import IGNORED_DIRECTORIES, is_binary


MAX_MATCHES = 100
MAX_LINE_LENGTH = 200
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB


def _matches_filter(relative: str, pattern: str) -> bool:
    """Patterns without a separator match the file name, others the path."""
    if "/" not in pattern:
        return match_glob(relative.rsplit("/", 1)[-1], pattern)
    return match_glob(relative, pattern)


async def search_files(params: Dict[str, Any], context: ExecutionContext) -> ToolResult:
    """Search file contents for a case-insensitive regular expression."""
    query = params.get("query")
    if not query:
        return ToolResult.fail("query is required")

    try:
        regex = re.compile(query, re.IGNORECASE)
    except re.error as e:
        return ToolResult.fail(f"Invalid regular expression: {e}")

    path = params.get("path") or "."
    include = params.get("include")
    exclude = params.get("exclude")

    target = context.resolve_path(path)
    if not target.exists():
        return ToolResult.fail(f"Path not found: {path}")

    if target.is_file():
        candidates = [target]
    else:
        candidates = []
        for root, dirnames, filenames in os.walk(target):
            dirnames[:] = sorted(d for d in dirnames if d not in IGNORED_DIRECTORIES)
            candidates.extend(Path(root) / name for name in sorted(filenames))

    matches: List[Dict[str, Any]] = []
    truncated = False

    for file_path in candidates:
        relative = context.relative_path(file_path)
        if include and not _matches_filter(relative, include):
            continue
        if exclude and _matches_filter(relative, exclude):
            continue
        if file_path.stat().st_size > MAX_FILE_SIZE:
            continue

        async with aiofiles.open(file_path, "rb") as f:
            raw = await f.read()
        if is_binary(raw):
            continue

        for number, line in enumerate(raw.decode("utf-8", errors="replace").splitlines(), start=1):
            if not regex.search(line):
                continue
            if len(matches) >= MAX_MATCHES:
                truncated = True
                break
            matches.append({
                "file": relative,
                "line": number,
                "content": line.strip()[:MAX_LINE_LENGTH],
            })

        if truncated:
            break

    return ToolResult.ok({
        "query": query,
        "matches": matches,
        "total_matches": len(matches),
        "truncated": truncated,
    })
