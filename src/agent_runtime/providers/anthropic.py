"""Anthropic Messages API adapter."""

from typing import Any, Dict, List

from agent_runtime.lib.errors import ProviderResponseError
from agent_runtime.models.message import ChatResponse, Message, MessageRole, StopReason, TokenUsage, ToolCall
from agent_runtime.models.tool import ToolDefinition
from agent_runtime.providers.base import BaseProvider, split_system_messages


class AnthropicProvider(BaseProvider):
    """Adapter for the Anthropic Messages API.

    System prompts travel in the top-level ``system`` field and tool
    results are sent back as ``tool_result`` blocks inside user turns.
    """

    name = "anthropic"
    api_version = "2023-06-01"

    STOP_REASONS = {
        "tool_use": StopReason.TOOL_USE,
        "max_tokens": StopReason.MAX_TOKENS,
    }

    async def _chat(self, messages: List[Message], tools: List[ToolDefinition]) -> ChatResponse:
        system, conversation = split_system_messages(messages)

        payload: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": self._convert_messages(conversation),
        }
        if system:
            payload["system"] = system
        if tools:
            payload["tools"] = [self._convert_tool(tool) for tool in tools]

        data = await self._post_json(
            f"{self.base_url}/v1/messages",
            payload,
            headers={
                "x-api-key": self.api_key,
                "anthropic-version": self.api_version,
                "content-type": "application/json",
            }
        )
        return self._parse_response(data)

    def _convert_messages(self, messages: List[Message]) -> List[Dict[str, Any]]:
        converted: List[Dict[str, Any]] = []

        for message in messages:
            if message.role == MessageRole.TOOL:
                block = {
                    "type": "tool_result",
                    "tool_use_id": message.tool_call_id,
                    "content": message.content,
                }
                previous = converted[-1] if converted else None
                # Consecutive tool results share one user turn
                if (
                    previous is not None
                    and previous["role"] == "user"
                    and isinstance(previous["content"], list)
                    and all(part.get("type") == "tool_result" for part in previous["content"])
                ):
                    previous["content"].append(block)
                else:
                    converted.append({"role": "user", "content": [block]})
                continue

            if message.role == MessageRole.ASSISTANT and message.tool_calls:
                blocks: List[Dict[str, Any]] = []
                if message.content:
                    blocks.append({"type": "text", "text": message.content})
                for call in message.tool_calls:
                    blocks.append({"type": "tool_use", "id": call.id, "name": call.name, "input": call.arguments})
                converted.append({"role": "assistant", "content": blocks})
                continue

            converted.append({"role": message.role, "content": message.content})

        return converted

    def _convert_tool(self, tool: ToolDefinition) -> Dict[str, Any]:
        schema = tool.parameters.to_json_schema()
        return {
            "name": tool.name,
            "description": tool.description,
            "input_schema": {
                "type": "object",
                "properties": schema.get("properties", {}),
                "required": schema.get("required", []),
            },
        }

    def _parse_response(self, data: Dict[str, Any]) -> ChatResponse:
        blocks = data.get("content")
        if not isinstance(blocks, list):
            raise ProviderResponseError("No response content from Anthropic", provider=self.name)

        text_parts: List[str] = []
        tool_calls: List[ToolCall] = []
        for block in blocks:
            block_type = block.get("type")
            if block_type == "text":
                text_parts.append(block.get("text", ""))
            elif block_type == "tool_use":
                tool_calls.append(ToolCall(
                    id=block["id"],
                    name=block["name"],
                    arguments=block.get("input") or {}
                ))

        usage = data.get("usage") or {}
        return ChatResponse(
            content="".join(text_parts),
            tool_calls=tool_calls,
            stop_reason=self.STOP_REASONS.get(data.get("stop_reason"), StopReason.END_TURN),
            usage=TokenUsage(
                input_tokens=usage.get("input_tokens", 0),
                output_tokens=usage.get("output_tokens", 0)
            )
        )
