"""Ollama local model adapter.

Models with native tool support receive a structured ``tools`` list.
All other models get a textual tool catalog in the system prompt and
answer with JSON envelopes that are parsed out of the reply text.
"""

import os
from typing import Any, Dict, List, Optional

import httpx

from agent_runtime.lib.config import DEFAULT_PROVIDER_SETTINGS, ProviderSettings
from agent_runtime.lib.errors import ProviderResponseError
from agent_runtime.models.message import ChatResponse, Message, MessageRole, StopReason, TokenUsage, ToolCall
from agent_runtime.models.tool import ToolDefinition
from agent_runtime.providers.base import BaseProvider, split_system_messages
from agent_runtime.providers.tool_envelope import build_tool_prompt, extract_tool_calls, render_envelope


DEFAULT_OLLAMA_HOST = DEFAULT_PROVIDER_SETTINGS["ollama"]["base_url"]

TOOL_CAPABLE_MODELS = (
    "llama3.1",
    "llama3.2",
    "llama3.3",
    "mistral",
    "mixtral",
    "qwen2.5",
    "qwen2",
    "command-r",
    "command-r-plus",
)


def supports_native_tools(model: str) -> bool:
    """Check whether a model name belongs to a natively tool-capable family."""
    lowered = model.lower()
    return any(family in lowered for family in TOOL_CAPABLE_MODELS)


class OllamaProvider(BaseProvider):
    """Adapter for a local Ollama server."""

    name = "ollama"
    requires_api_key = False
    remediation = "Ensure Ollama is running with 'ollama serve'."

    def __init__(
        self,
        settings: Optional[ProviderSettings] = None,
        api_key: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        model: Optional[str] = None,
        host: Optional[str] = None
    ):
        settings = settings or ProviderSettings(**DEFAULT_PROVIDER_SETTINGS["ollama"])
        overrides: Dict[str, Any] = {}
        env_host = host or os.environ.get("OLLAMA_HOST")
        if env_host:
            overrides["base_url"] = env_host.rstrip("/")
        env_model = model or os.environ.get("OLLAMA_MODEL")
        if env_model:
            overrides["model"] = env_model
        if overrides:
            settings = settings.model_copy(update=overrides)

        super().__init__(settings, api_key=api_key, client=client)
        self.native_tools = supports_native_tools(self.model)

    @property
    def host(self) -> str:
        return self.base_url

    async def _chat(self, messages: List[Message], tools: List[ToolDefinition]) -> ChatResponse:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": self._convert_messages(messages, tools),
            "stream": False,
            "options": {
                "num_predict": self.max_tokens,
                "temperature": self.temperature,
            },
        }
        if tools and self.native_tools:
            payload["tools"] = [self._convert_tool(tool) for tool in tools]

        data = await self._post_json(f"{self.host}/api/chat", payload)
        return self._parse_response(data, parse_text_calls=bool(tools))

    def _convert_messages(self, messages: List[Message], tools: List[ToolDefinition]) -> List[Dict[str, Any]]:
        system, conversation = split_system_messages(messages)
        if tools and not self.native_tools:
            system = (system or "") + build_tool_prompt(tools)

        converted: List[Dict[str, Any]] = []
        if system:
            converted.append({"role": "system", "content": system.strip()})

        for message in conversation:
            if message.role == MessageRole.TOOL:
                converted.append({
                    "role": "user",
                    "content": f"Tool result for {message.tool_name or 'unknown'}: {message.content}",
                })
            elif message.role == MessageRole.ASSISTANT and message.tool_calls:
                if self.native_tools:
                    converted.append({
                        "role": "assistant",
                        "content": message.content,
                        "tool_calls": [
                            {"function": {"name": call.name, "arguments": call.arguments}}
                            for call in message.tool_calls
                        ],
                    })
                else:
                    envelopes = "\n".join(render_envelope(call) for call in message.tool_calls)
                    content = f"{message.content}\n{envelopes}" if message.content else envelopes
                    converted.append({"role": "assistant", "content": content})
            else:
                converted.append({"role": message.role, "content": message.content})

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

    def _parse_response(self, data: Dict[str, Any], parse_text_calls: bool = True) -> ChatResponse:
        message = data.get("message")
        if not isinstance(message, dict):
            raise ProviderResponseError("No response from Ollama", provider=self.name)

        content = message.get("content") or ""
        tool_calls: List[ToolCall] = []

        for index, call in enumerate(message.get("tool_calls") or []):
            function = call.get("function") or {}
            arguments = function.get("arguments")
            tool_calls.append(ToolCall(
                id=f"ollama-native-{index}",
                name=function.get("name", ""),
                arguments=arguments if isinstance(arguments, dict) else {}
            ))

        if not tool_calls and parse_text_calls:
            tool_calls, content = extract_tool_calls(content, id_prefix="ollama")

        if tool_calls:
            stop_reason = StopReason.TOOL_USE
        elif data.get("done_reason") == "length":
            stop_reason = StopReason.MAX_TOKENS
        else:
            stop_reason = StopReason.END_TURN

        return ChatResponse(
            content=content,
            tool_calls=tool_calls,
            stop_reason=stop_reason,
            usage=TokenUsage(
                input_tokens=data.get("prompt_eval_count", 0),
                output_tokens=data.get("eval_count", 0)
            )
        )

    async def is_available(self) -> bool:
        """Probe whether the Ollama server answers."""
        try:
            response = await self.client.get(f"{self.host}/api/tags")
        except httpx.TransportError as e:
            self.logger.debug(f"Ollama not reachable at {self.host}: {e}")
            return False
        return response.is_success

    async def list_models(self) -> List[str]:
        """List models installed on the Ollama server, or [] when unreachable."""
        try:
            response = await self.client.get(f"{self.host}/api/tags")
        except httpx.TransportError as e:
            self.logger.debug(f"Cannot list Ollama models at {self.host}: {e}")
            return []
        if not response.is_success:
            return []
        try:
            data = response.json()
        except ValueError:
            return []
        return [model["name"] for model in data.get("models") or [] if "name" in model]
