"""Model provider adapters normalized to a single chat contract."""

from .anthropic import AnthropicProvider
from .base import BaseProvider
from .factory import PROVIDERS, available_providers, create_provider, create_provider_from_env
from .gemini import GeminiProvider
from .ollama import OllamaProvider
from .openai import OpenAIProvider

__all__ = [
    "AnthropicProvider",
    "BaseProvider",
    "GeminiProvider",
    "OllamaProvider",
    "OpenAIProvider",
    "PROVIDERS",
    "available_providers",
    "create_provider",
    "create_provider_from_env",
]
