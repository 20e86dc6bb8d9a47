"""Glob matching for governance file rules.

``fnmatch`` lets ``*`` cross directory separators and has no notion of
``**``, so rules are compiled to anchored regular expressions instead:

* ``**/`` matches zero or more leading directories
* ``**`` matches anything, separators included
* ``*`` matches within a single path segment
* ``?`` matches one non-separator character
"""

import posixpath
import re
from functools import lru_cache
from typing import Iterable, Optional, Pattern


@lru_cache(maxsize=512)
def compile_glob(pattern: str) -> Pattern[str]:
    """Compile a glob pattern into an anchored regex."""
    parts = []
    i = 0
    length = len(pattern)

    while i < length:
        char = pattern[i]
        if char == "*":
            if i + 1 < length and pattern[i + 1] == "*":
                if i + 2 < length and pattern[i + 2] == "/":
                    parts.append("(?:.*/)?")
                    i += 3
                    continue
                parts.append(".*")
                i += 2
                continue
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        else:
            parts.append(re.escape(char))
        i += 1

    return re.compile("^" + "".join(parts) + "$")


def normalize_path(path: str) -> str:
    """Normalize a workspace-relative path for rule matching.

    Separators become forward slashes, leading slashes are dropped and
    ``.`` and ``..`` segments are collapsed. A result starting with ``..``
    points outside the workspace.
    """
    normalized = path.replace("\\", "/").lstrip("/")
    if not normalized:
        return normalized
    normalized = posixpath.normpath(normalized)
    return "" if normalized == "." else normalized


def escapes_root(path: str) -> bool:
    """Return True if the normalized path climbs above the workspace root."""
    normalized = normalize_path(path)
    return normalized == ".." or normalized.startswith("../")


def match_glob(path: str, pattern: str) -> bool:
    """Return True if the normalized path matches the glob pattern."""
    return compile_glob(pattern).match(normalize_path(path)) is not None


def first_match(path: str, patterns: Iterable[str]) -> Optional[str]:
    """Return the first pattern matching the path, if any."""
    for pattern in patterns:
        if match_glob(path, pattern):
            return pattern
    return None
