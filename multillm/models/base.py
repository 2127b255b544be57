"""Abstract async gateway client interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from ..utils.cancellation import CancellationToken


def _field(source: Any, name: str) -> Any:
    if source is None:
        return None
    if isinstance(source, dict):
        return source.get(name)
    return getattr(source, name, None)


@dataclass(slots=True)
class TokenUsage:
    """Token accounting reported by the gateway."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def from_payload(cls, usage: Any) -> "TokenUsage":
        """Read an SDK usage object or a plain dict; missing fields count as 0."""
        return cls(
            prompt_tokens=int(_field(usage, "prompt_tokens") or 0),
            completion_tokens=int(_field(usage, "completion_tokens") or 0),
            total_tokens=int(_field(usage, "total_tokens") or 0),
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass(slots=True)
class Completion:
    """Normalized successful completion."""

    text: str
    model_id: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    raw: dict[str, Any] = field(default_factory=dict)


class BaseGatewayClient(ABC):
    """Base class for provider-specific async gateway clients.

    Implementations raise the per-model errors from :mod:`multillm.errors`
    (``TransportError``, ``ProviderError``, ``MalformedResponseError``,
    ``MissingCredentialError``, ``DispatchCancelledError``).
    """

    def __init__(self, provider: str, dry_run: bool = False) -> None:
        self.provider = provider
        self.dry_run = dry_run

    @abstractmethod
    async def complete(
        self,
        *,
        model_id: str,
        messages: list[dict[str, str]],
        max_tokens: int,
        temperature: float,
        timeout_seconds: float,
        streaming: bool = False,
        cancel_token: CancellationToken | None = None,
    ) -> Completion:
        """Run one chat completion."""

    async def close(self) -> None:
        """Optional resource cleanup hook."""
        return None
