"""Per-provider gateway configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from .base import BaseGatewayClient


@dataclass(frozen=True, slots=True)
class ProviderConfig:
    """Connection settings for one OpenAI-compatible gateway.

    ``rpm_limit`` is opt-in: 0 (the default for every built-in provider) sends
    requests unthrottled. Set it with ``dataclasses.replace(IONET, rpm_limit=60)``
    to have the invoker hold each provider to that many requests per minute.
    """

    name: str
    api_key_env: str
    base_url: str | None = None
    timeout_seconds: float = 300.0
    rpm_limit: int = 0
    max_tokens_field: str = "max_tokens"
    stream_usage: bool = False
    extra_headers: Mapping[str, str] = field(default_factory=dict)


IONET = ProviderConfig(
    name="ionet",
    api_key_env="IONET_API_KEY",
    base_url="https://api.intelligence.io.solutions/api/v1",
    max_tokens_field="max_completion_tokens",
)

OPENAI = ProviderConfig(
    name="openai",
    api_key_env="OPENAI_API_KEY",
    timeout_seconds=120.0,
    max_tokens_field="max_completion_tokens",
    stream_usage=True,
)

GEMINI = ProviderConfig(
    name="gemini",
    api_key_env="GOOGLE_API_KEY",
    base_url="https://generativelanguage.googleapis.com/v1beta/openai/",
    timeout_seconds=120.0,
)

DEFAULT_PROVIDERS: Mapping[str, ProviderConfig] = MappingProxyType(
    {cfg.name: cfg for cfg in (IONET, OPENAI, GEMINI)}
)


def build_clients(
    providers: Mapping[str, ProviderConfig] | None = None,
    *,
    api_keys: Mapping[str, str] | None = None,
    dry_run: bool = False,
) -> dict[str, BaseGatewayClient]:
    """Create one client per provider.

    ``api_keys`` maps provider name to an explicit key; otherwise each client
    reads its key from the environment at call time.
    """
    from .openai_compat import OpenAICompatibleClient

    api_keys = api_keys or {}
    return {
        name: OpenAICompatibleClient(config, api_key=api_keys.get(name), dry_run=dry_run)
        for name, config in (providers or DEFAULT_PROVIDERS).items()
    }
