"""OpenAI Chat Completions adapter."""

import json
from typing import Any, Dict, List

from agent_runtime.lib.errors import ProviderResponseError
from agent_runtime.models.message import ChatResponse, Message, MessageRole, StopReason, TokenUsage, ToolCall
from agent_runtime.models.tool import ToolDefinition
from agent_runtime.providers.base import BaseProvider


class OpenAIProvider(BaseProvider):
    """Adapter for the OpenAI Chat Completions API."""

    name = "openai"

    FINISH_REASONS = {
        "tool_calls": StopReason.TOOL_USE,
        "length": StopReason.MAX_TOKENS,
    }

    async def _chat(self, messages: List[Message], tools: List[ToolDefinition]) -> ChatResponse:
        payload: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": [self._convert_message(message) for message in messages],
        }
        if tools:
            payload["tools"] = [self._convert_tool(tool) for tool in tools]

        data = await self._post_json(
            f"{self.base_url}/v1/chat/completions",
            payload,
            headers={"Authorization": f"Bearer {self.api_key}"}
        )
        return self._parse_response(data)

    def _convert_message(self, message: Message) -> Dict[str, Any]:
        if message.role == MessageRole.TOOL:
            return {"role": "tool", "tool_call_id": message.tool_call_id, "content": message.content}

        converted: Dict[str, Any] = {"role": message.role, "content": message.content}
        if message.role == MessageRole.ASSISTANT and message.tool_calls:
            converted["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": json.dumps(call.arguments)},
                }
                for call in message.tool_calls
            ]
        return converted

    def _convert_tool(self, tool: ToolDefinition) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.parameters.to_json_schema(),
            },
        }

    def _parse_arguments(self, raw: Any, tool_name: str) -> Dict[str, Any]:
        if isinstance(raw, dict):
            return raw
        if not raw:
            return {}
        try:
            parsed = json.loads(raw)
        except (TypeError, json.JSONDecodeError) as e:
            self.logger.warning(f"Discarding malformed arguments for {tool_name}: {e}")
            return {}
        return parsed if isinstance(parsed, dict) else {}

    def _parse_response(self, data: Dict[str, Any]) -> ChatResponse:
        choices = data.get("choices") or []
        if not choices:
            raise ProviderResponseError("No response from OpenAI", provider=self.name)

        choice = choices[0]
        message = choice.get("message") or {}

        tool_calls = []
        for call in message.get("tool_calls") or []:
            function = call.get("function") or {}
            tool_calls.append(ToolCall(
                id=call.get("id", ""),
                name=function.get("name", ""),
                arguments=self._parse_arguments(function.get("arguments"), function.get("name", ""))
            ))

        usage = data.get("usage") or {}
        return ChatResponse(
            content=message.get("content") or "",
            tool_calls=tool_calls,
            stop_reason=self.FINISH_REASONS.get(choice.get("finish_reason"), StopReason.END_TURN),
            usage=TokenUsage(
                input_tokens=usage.get("prompt_tokens", 0),
                output_tokens=usage.get("completion_tokens", 0)
            )
        )
