"""Google Gemini generateContent adapter."""

import uuid
from typing import Any, Dict, List

from agent_runtime.lib.errors import ProviderResponseError
from agent_runtime.models.message import ChatResponse, Message, MessageRole, StopReason, TokenUsage, ToolCall
from agent_runtime.models.tool import ToolDefinition, ToolParameterProperty
from agent_runtime.providers.base import BaseProvider, split_system_messages


GEMINI_TYPES = {
    "string": "STRING",
    "number": "NUMBER",
    "integer": "INTEGER",
    "boolean": "BOOLEAN",
    "array": "ARRAY",
    "object": "OBJECT",
}


def generate_call_id() -> str:
    """Gemini does not assign call ids, so one is synthesized."""
    return f"gemini-{uuid.uuid4().hex[:12]}"


class GeminiProvider(BaseProvider):
    """Adapter for the Gemini generateContent API.

    Gemini uses a ``user``/``model`` role vocabulary, carries the system
    prompt in ``systemInstruction`` and returns tool results as
    ``functionResponse`` parts.
    """

    name = "gemini"

    FINISH_REASONS = {
        "STOP": StopReason.END_TURN,
        "MAX_TOKENS": StopReason.MAX_TOKENS,
    }

    async def _chat(self, messages: List[Message], tools: List[ToolDefinition]) -> ChatResponse:
        system, conversation = split_system_messages(messages)

        payload: Dict[str, Any] = {
            "contents": [self._convert_message(message) for message in conversation],
            "generationConfig": {
                "maxOutputTokens": self.max_tokens,
                "temperature": self.temperature,
            },
        }
        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}
        if tools:
            payload["tools"] = [{"functionDeclarations": [self._convert_tool(tool) for tool in tools]}]

        data = await self._post_json(
            f"{self.base_url}/v1beta/models/{self.model}:generateContent",
            payload,
            headers={"x-goog-api-key": self.api_key}
        )
        return self._parse_response(data)

    def _convert_message(self, message: Message) -> Dict[str, Any]:
        if message.role == MessageRole.TOOL:
            return {
                "role": "user",
                "parts": [{
                    "functionResponse": {
                        "name": message.tool_name or "unknown",
                        "response": {"result": message.content},
                    }
                }],
            }

        if message.role == MessageRole.ASSISTANT:
            parts: List[Dict[str, Any]] = []
            if message.content:
                parts.append({"text": message.content})
            for call in message.tool_calls:
                parts.append({"functionCall": {"name": call.name, "args": call.arguments}})
            return {"role": "model", "parts": parts or [{"text": ""}]}

        return {"role": "user", "parts": [{"text": message.content}]}

    def _convert_property(self, prop: ToolParameterProperty) -> Dict[str, Any]:
        converted: Dict[str, Any] = {"type": GEMINI_TYPES.get(prop.type, "STRING")}
        if prop.description:
            converted["description"] = prop.description
        if prop.enum:
            converted["enum"] = prop.enum
        if prop.type == "array":
            item_type = (prop.items or {}).get("type", "string")
            converted["items"] = {"type": GEMINI_TYPES.get(item_type, "STRING")}
        return converted

    def _convert_tool(self, tool: ToolDefinition) -> Dict[str, Any]:
        declaration: Dict[str, Any] = {
            "name": tool.name,
            "description": tool.description,
        }
        if tool.parameters.properties:
            declaration["parameters"] = {
                "type": "OBJECT",
                "properties": {
                    name: self._convert_property(prop)
                    for name, prop in tool.parameters.properties.items()
                },
                "required": list(tool.parameters.required),
            }
        return declaration

    def _parse_response(self, data: Dict[str, Any]) -> ChatResponse:
        candidates = data.get("candidates") or []
        if not candidates:
            raise ProviderResponseError("No response from Gemini", provider=self.name)

        candidate = candidates[0]
        parts = (candidate.get("content") or {}).get("parts") or []

        text_parts: List[str] = []
        tool_calls: List[ToolCall] = []
        for part in parts:
            if "text" in part:
                text_parts.append(part["text"])
            elif "functionCall" in part:
                call = part["functionCall"]
                tool_calls.append(ToolCall(
                    id=generate_call_id(),
                    name=call.get("name", ""),
                    arguments=call.get("args") or {}
                ))

        usage = data.get("usageMetadata") or {}
        return ChatResponse(
            content="".join(text_parts),
            tool_calls=tool_calls,
            stop_reason=self.FINISH_REASONS.get(candidate.get("finishReason"), StopReason.END_TURN),
            usage=TokenUsage(
                input_tokens=usage.get("promptTokenCount", 0),
                output_tokens=usage.get("candidatesTokenCount", 0)
            )
        )
