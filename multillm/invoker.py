"""Single-model invocation normalized into an ``InvocationResult``."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
import time
from typing import Mapping

from .conversation import ChatHistory
from .errors import InvalidArgumentError, InvocationError, ProviderError, TransportError
from .models.base import BaseGatewayClient
from .registry import DEFAULT_REGISTRY, ModelRegistry
from .results import InvocationResult
from .utils.cancellation import CancellationToken
from .utils.logging_config import preview
from .utils.rate_limiter import AsyncRateLimiter, retry_with_backoff


MAX_TOKENS_LIMIT = 8192


@dataclass(frozen=True, slots=True)
class InvocationParams:
    """Generation parameters shared by every model of a batch.

    Retries are off by default; ``max_retries`` opts in to exponential backoff
    on transport errors and HTTP 429/5xx.
    """

    max_tokens: int = 1024
    temperature: float = 0.7
    timeout_seconds: float = 300.0
    streaming: bool = True
    max_retries: int = 0
    retry_base_delay: float = 1.0

    def validate(self) -> None:
        if isinstance(self.max_tokens, bool) or not isinstance(self.max_tokens, int):
            raise InvalidArgumentError("max_tokens must be an integer")
        if not 1 <= self.max_tokens <= MAX_TOKENS_LIMIT:
            raise InvalidArgumentError(f"max_tokens must be within 1..{MAX_TOKENS_LIMIT}")
        if not isinstance(self.temperature, (int, float)) or not 0.0 <= self.temperature <= 2.0:
            raise InvalidArgumentError("temperature must be within 0..2")
        if not isinstance(self.timeout_seconds, (int, float)) or self.timeout_seconds <= 0:
            raise InvalidArgumentError("timeout_seconds must be > 0")
        if not isinstance(self.streaming, bool):
            raise InvalidArgumentError("streaming must be a bool")
        if isinstance(self.max_retries, bool) or not isinstance(self.max_retries, int) or self.max_retries < 0:
            raise InvalidArgumentError("max_retries must be a non-negative integer")
        if self.retry_base_delay < 0:
            raise InvalidArgumentError("retry_base_delay must be >= 0")


def validate_prompt(prompt: object) -> str:
    if not isinstance(prompt, str) or not prompt.strip():
        raise InvalidArgumentError("prompt must be a non-empty string")
    return prompt


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, ProviderError):
        return exc.retryable
    return isinstance(exc, TransportError)


class ModelInvoker:
    """Runs one request/response cycle per call and never raises for model failures."""

    def __init__(
        self,
        clients: Mapping[str, BaseGatewayClient],
        registry: ModelRegistry | None = None,
        *,
        default_provider: str = "ionet",
        rate_limiter: AsyncRateLimiter | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.clients = dict(clients)
        self.registry = registry or DEFAULT_REGISTRY
        self.default_provider = default_provider
        self.rate_limiter = rate_limiter or AsyncRateLimiter()
        self.logger = logger or logging.getLogger(__name__)

    def provider_for(self, model_id: str) -> str:
        descriptor = self.registry.get(model_id)
        return descriptor.provider if descriptor is not None else self.default_provider

    def _client_for(self, model_id: str) -> BaseGatewayClient:
        provider = self.provider_for(model_id)
        client = self.clients.get(provider)
        if client is None:
            raise InvocationError(f"no client configured for provider '{provider}'")
        return client

    async def invoke(
        self,
        model_id: str,
        prompt: str | None = None,
        params: InvocationParams | None = None,
        *,
        messages: list[dict[str, str]] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> InvocationResult:
        """Call ``model_id`` with ``prompt`` (or a full message list).

        Raises:
            InvalidArgumentError: bad prompt or params; no request is sent.
        """
        params = params or InvocationParams()
        params.validate()
        if messages is None:
            messages = [{"role": "user", "content": validate_prompt(prompt)}]
        elif not messages:
            raise InvalidArgumentError("messages must not be empty")

        started = time.perf_counter()
        try:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            client = self._client_for(model_id)
            rpm = int(getattr(getattr(client, "config", None), "rpm_limit", 0) or 0)

            async def _attempt():
                await self.rate_limiter.acquire(key=client.provider, rpm=rpm)
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()
                try:
                    return await asyncio.wait_for(
                        client.complete(
                            model_id=model_id,
                            messages=messages,
                            max_tokens=params.max_tokens,
                            temperature=params.temperature,
                            timeout_seconds=params.timeout_seconds,
                            streaming=params.streaming,
                            cancel_token=cancel_token,
                        ),
                        timeout=params.timeout_seconds,
                    )
                except asyncio.TimeoutError as exc:
                    raise TransportError(f"timeout after {params.timeout_seconds:g}s") from exc

            completion = await retry_with_backoff(
                _attempt,
                max_retries=params.max_retries,
                base_delay=params.retry_base_delay,
                retryable_exceptions=(TransportError, ProviderError),
                should_retry=_is_retryable,
            )
        except InvocationError as exc:
            elapsed = time.perf_counter() - started
            self.logger.warning("Model %s failed after %.2fs: %s", model_id, elapsed, exc)
            return InvocationResult.failed(model_id, str(exc), elapsed, error_type=type(exc).__name__)
        except Exception as exc:
            elapsed = time.perf_counter() - started
            self.logger.warning("Model %s raised unexpectedly", model_id, exc_info=True)
            return InvocationResult.failed(
                model_id,
                f"{type(exc).__name__}: {exc}",
                elapsed,
                error_type=type(exc).__name__,
            )

        elapsed = time.perf_counter() - started
        self.logger.debug("Model %s answered in %.2fs: %s", model_id, elapsed, preview(completion.text))
        return InvocationResult.ok(model_id, completion.text, completion.usage, elapsed)

    async def chat(
        self,
        model_id: str,
        history: ChatHistory,
        user_message: str,
        params: InvocationParams | None = None,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> InvocationResult:
        """Send ``user_message`` with the whole ``history``; record the reply.

        On failure the user turn is removed again, so the history only ever
        holds completed exchanges.
        """
        history.add_user(validate_prompt(user_message))
        result = await self.invoke(
            model_id,
            params=params,
            messages=history.as_messages(),
            cancel_token=cancel_token,
        )
        if result.success and result.response_text is not None:
            history.add_assistant(result.response_text)
        else:
            history.pop()
        return result
