"""Text-embedded tool calls for backends without native tool calling.

The model is told to answer with an envelope such as::

    {"tool_call": {"name": "search_files", "arguments": {"query": "foo"}}}

Arguments can contain nested objects and braces inside strings, so each
envelope is delimited by a bracket-depth scan from its marker rather than
by a single regular expression.
"""

import json
import logging
import re
import uuid
from typing import Iterable, List, Optional, Tuple

from agent_runtime.models.message import ToolCall
from agent_runtime.models.tool import ToolDefinition


logger = logging.getLogger(__name__)

ENVELOPE_MARKER = re.compile(r'\{\s*"tool_call"\s*:')


def find_envelope_end(text: str, start: int) -> Optional[int]:
    """Return the index just past the brace that closes the object at ``start``.

    Braces inside JSON string literals are ignored. Returns None when the
    object is never closed.
    """
    depth = 0
    in_string = False
    escaped = False

    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index + 1

    return None


def extract_tool_calls(text: str, id_prefix: str = "call") -> Tuple[List[ToolCall], str]:
    """Parse tool call envelopes out of free text.

    Malformed envelopes are left in place and skipped.

    Args:
        text: Model output
        id_prefix: Prefix for synthesized call ids

    Returns:
        Tuple of (parsed tool calls, text with parsed envelopes removed)
    """
    calls: List[ToolCall] = []
    spans: List[Tuple[int, int]] = []
    position = 0

    while True:
        marker = ENVELOPE_MARKER.search(text, position)
        if marker is None:
            break

        start = marker.start()
        end = find_envelope_end(text, start)
        if end is None:
            logger.debug(f"Unterminated tool call envelope at offset {start}")
            position = marker.end()
            continue

        call = _parse_envelope(text[start:end], id_prefix)
        if call is None:
            position = marker.end()
            continue

        calls.append(call)
        spans.append((start, end))
        position = end

    return calls, strip_spans(text, spans)


def _parse_envelope(raw: str, id_prefix: str) -> Optional[ToolCall]:
    try:
        envelope = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.debug(f"Skipping malformed tool call envelope: {e}")
        return None

    body = envelope.get("tool_call") if isinstance(envelope, dict) else None
    if not isinstance(body, dict):
        return None

    name = body.get("name")
    if not isinstance(name, str) or not name:
        return None

    arguments = body.get("arguments")
    if not isinstance(arguments, dict):
        arguments = {}

    return ToolCall(id=f"{id_prefix}-{uuid.uuid4().hex[:12]}", name=name, arguments=arguments)


def strip_spans(text: str, spans: Iterable[Tuple[int, int]]) -> str:
    """Remove the given (start, end) spans and trim the result."""
    pieces = []
    cursor = 0
    for start, end in sorted(spans):
        pieces.append(text[cursor:start])
        cursor = end
    pieces.append(text[cursor:])
    return "".join(pieces).strip()


def render_envelope(call: ToolCall) -> str:
    """Render a tool call in envelope form, for replaying assistant turns."""
    return json.dumps({"tool_call": {"name": call.name, "arguments": call.arguments}})


def build_tool_prompt(tools: Iterable[ToolDefinition]) -> str:
    """Build the textual tool catalog appended to the system prompt."""
    lines = ["", "", "You have access to the following tools:"]
    for tool in tools:
        lines.append(f"- {tool.name}: {tool.description}")
        lines.append(f"  Parameters: {json.dumps(tool.parameters.to_json_schema())}")

    lines.extend([
        "",
        "To use a tool, respond with a JSON object in this exact format:",
        '{"tool_call": {"name": "<tool_name>", "arguments": {<arguments>}}}',
        "",
        "Only use one tool at a time. After receiving the tool result, continue with your task.",
    ])
    return "\n".join(lines)
