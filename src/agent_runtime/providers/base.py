"""Base provider adapter with shared HTTP and error handling."""

import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Tuple

import httpx

from agent_runtime.lib.config import ProviderSettings
from agent_runtime.lib.errors import (
    ConfigurationError,
    ConnectivityError,
    ProviderResponseError,
    VendorAPIError,
)
from agent_runtime.lib.observability import get_tracer
from agent_runtime.models.message import ChatResponse, Message, MessageRole
from agent_runtime.models.tool import ToolDefinition


logger = logging.getLogger(__name__)


def split_system_messages(messages: Iterable[Message]) -> Tuple[Optional[str], List[Message]]:
    """Separate system messages from the conversation.

    Multiple system messages are joined with blank lines, in order.

    Returns:
        Tuple of (system text or None, remaining messages)
    """
    system_parts: List[str] = []
    conversation: List[Message] = []
    for message in messages:
        if message.role == MessageRole.SYSTEM:
            if message.content:
                system_parts.append(message.content)
        else:
            conversation.append(message)
    return ("\n\n".join(system_parts) if system_parts else None), conversation


class BaseProvider(ABC):
    """Base class for all model provider adapters.

    Subclasses translate the normalized conversation into their vendor's
    wire format in ``_chat`` and map the reply back into a ChatResponse.
    """

    name: str = "base"
    requires_api_key: bool = True
    remediation: str = "Check network connectivity and the configured base URL."

    def __init__(
        self,
        settings: ProviderSettings,
        api_key: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        model: Optional[str] = None
    ):
        """Initialize the provider.

        Args:
            settings: Connection and generation settings
            api_key: Explicit credential; falls back to the settings' env variable
            client: Shared HTTP client; one is created lazily if omitted
            model: Model override

        Raises:
            ConfigurationError: If a required credential is missing
        """
        self.settings = settings
        self.logger = logging.getLogger(f"{__name__}.{self.name}")
        self.model = model or settings.model
        self.max_tokens = settings.max_tokens
        self.temperature = settings.temperature
        self.base_url = settings.base_url.rstrip("/")
        self.api_key = self._resolve_api_key(api_key)
        self._client = client
        self._owns_client = client is None

    def _resolve_api_key(self, api_key: Optional[str]) -> Optional[str]:
        if api_key or not self.requires_api_key:
            return api_key

        env_var = self.settings.api_key_env
        resolved = os.environ.get(env_var) if env_var else None
        if not resolved:
            raise ConfigurationError(
                f"API key is required for {self.name} provider. "
                f"Set {env_var or 'the provider API key'} environment variable or pass api_key explicitly."
            )
        return resolved

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.settings.timeout_seconds))
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "BaseProvider":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def chat(self, messages: List[Message], tools: Optional[List[ToolDefinition]] = None) -> ChatResponse:
        """Request a completion for the conversation.

        Args:
            messages: Conversation so far, system messages included
            tools: Tools the model may call

        Returns:
            Normalized ChatResponse
        """
        tool_list = list(tools or [])
        tracer = get_tracer(__name__)
        with tracer.start_as_current_span(
            "provider.chat",
            attributes={
                "provider.name": self.name,
                "provider.model": self.model,
                "provider.message_count": len(messages),
                "provider.tool_count": len(tool_list),
            }
        ) as span:
            response = await self._chat(list(messages), tool_list)
            span.set_attribute("provider.stop_reason", str(response.stop_reason))
            span.set_attribute("provider.tool_calls", len(response.tool_calls))
            span.set_attribute("provider.input_tokens", response.usage.input_tokens)
            span.set_attribute("provider.output_tokens", response.usage.output_tokens)

        self.logger.debug(
            f"{self.name} completion: stop_reason={response.stop_reason}, "
            f"tool_calls={len(response.tool_calls)}, "
            f"tokens={response.usage.input_tokens}/{response.usage.output_tokens}"
        )
        return response

    @abstractmethod
    async def _chat(self, messages: List[Message], tools: List[ToolDefinition]) -> ChatResponse:
        """Vendor-specific completion request."""
        pass

    async def _post_json(
        self,
        url: str,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        """POST a JSON payload and return the decoded JSON object.

        Raises:
            ConnectivityError: If the backend cannot be reached
            VendorAPIError: If the backend answers with a non-success status
            ProviderResponseError: If the body is missing or not a JSON object
        """
        try:
            response = await self.client.post(url, json=payload, headers=headers)
        except httpx.TransportError as e:
            self.logger.error(f"{self.name} backend unreachable at {self.base_url}: {e}")
            raise ConnectivityError(
                host=self.base_url,
                remediation=self.remediation,
                cause=e,
                provider=self.name
            ) from e

        if not response.is_success:
            self.logger.warning(f"{self.name} API returned {response.status_code}")
            raise VendorAPIError(self.name, response.status_code, response.text)

        if not response.content:
            raise ProviderResponseError(f"Empty response body from {self.name}", provider=self.name)

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderResponseError(f"Invalid JSON response from {self.name}: {e}", provider=self.name) from e

        if not isinstance(data, dict):
            raise ProviderResponseError(f"Unexpected response shape from {self.name}", provider=self.name)

        return data
