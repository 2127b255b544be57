"""Gateway client adapters."""

from .base import BaseGatewayClient, Completion, TokenUsage
from .openai_compat import OpenAICompatibleClient
from .providers import DEFAULT_PROVIDERS, ProviderConfig, build_clients

__all__ = [
    "BaseGatewayClient",
    "Completion",
    "TokenUsage",
    "OpenAICompatibleClient",
    "DEFAULT_PROVIDERS",
    "ProviderConfig",
    "build_clients",
]
