"""Provider construction from explicit settings or the environment."""

import logging
import os
from typing import Dict, List, Optional, Type

import httpx

from agent_runtime.lib.config import ProviderSettings, ProvidersConfig
from agent_runtime.lib.errors import ConfigurationError
from agent_runtime.providers.anthropic import AnthropicProvider
from agent_runtime.providers.base import BaseProvider
from agent_runtime.providers.gemini import GeminiProvider
from agent_runtime.providers.ollama import OllamaProvider
from agent_runtime.providers.openai import OpenAIProvider


logger = logging.getLogger(__name__)

PROVIDER_ENV_VAR = "AGENT_RUNTIME_PROVIDER"

PROVIDERS: Dict[str, Type[BaseProvider]] = {
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
    "gemini": GeminiProvider,
    "ollama": OllamaProvider,
}


def available_providers() -> List[str]:
    return sorted(PROVIDERS)


def create_provider(
    name: str,
    settings: Optional[ProviderSettings] = None,
    api_key: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
    model: Optional[str] = None
) -> BaseProvider:
    """Create a provider adapter by vendor name.

    Args:
        name: Vendor name (anthropic, openai, gemini, ollama)
        settings: Provider settings; built-in defaults when omitted
        api_key: Explicit credential overriding the environment
        client: Shared HTTP client
        model: Model override

    Raises:
        ConfigurationError: For unknown vendors or missing credentials
    """
    key = name.strip().lower()
    provider_class = PROVIDERS.get(key)
    if provider_class is None:
        raise ConfigurationError(
            f"Unknown provider: {name}. Available providers: {', '.join(available_providers())}"
        )

    settings = settings or ProvidersConfig().settings_for(key)
    provider = provider_class(settings, api_key=api_key, client=client, model=model)
    logger.info(f"Created {key} provider with model {provider.model}")
    return provider


def create_provider_from_env(
    config: Optional[ProvidersConfig] = None,
    client: Optional[httpx.AsyncClient] = None
) -> BaseProvider:
    """Create the provider selected by AGENT_RUNTIME_PROVIDER or configuration."""
    config = config or ProvidersConfig()
    name = (os.environ.get(PROVIDER_ENV_VAR) or config.default).strip().lower()
    if name not in PROVIDERS:
        raise ConfigurationError(
            f"Unknown provider: {name}. Available providers: {', '.join(available_providers())}"
        )
    return create_provider(name, settings=config.settings_for(name), client=client)
