"""OpenAI-compatible gateway client (io.net, OpenAI, Gemini)."""

from __future__ import annotations

import asyncio
import logging
import os
import random
from typing import Any

import openai
from openai import AsyncOpenAI

from ..errors import MalformedResponseError, MissingCredentialError, ProviderError, TransportError
from ..utils.cancellation import CancellationToken
from ..utils.logging_config import mask_secret
from .base import BaseGatewayClient, Completion, TokenUsage
from .providers import ProviderConfig


logger = logging.getLogger(__name__)

STATUS_CATEGORIES = {
    400: "Bad Request",
    401: "Authentication Error",
    403: "Access Forbidden",
    404: "Model Not Found",
    429: "Rate Limit Exceeded",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
    504: "Gateway Timeout",
}


def _error_detail(body: Any) -> str:
    if isinstance(body, dict):
        nested = body.get("error")
        if isinstance(nested, dict) and nested.get("message"):
            return str(nested["message"])
        if body.get("message"):
            return str(body["message"])
    elif isinstance(body, str) and body.strip():
        return body.strip()[:200]
    return "No detailed error message available"


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


def describe_status_error(status_code: int, model_id: str, body: Any) -> str:
    """Short classified message for a non-2xx gateway response."""
    category = STATUS_CATEGORIES.get(status_code, "HTTP Error")
    detail = _error_detail(body)
    if status_code == 404:
        detail = f"model '{model_id}' is not available or temporarily offline ({detail})"
    elif status_code == 429:
        detail = f"rate limit exceeded for model '{model_id}' ({detail})"
    elif status_code == 503:
        detail = f"model '{model_id}' service is temporarily unavailable ({detail})"
    return f"HTTP {status_code}: {category} - {detail}"


class OpenAICompatibleClient(BaseGatewayClient):
    """Async wrapper around the OpenAI Python SDK's Chat Completions API."""

    def __init__(
        self,
        config: ProviderConfig,
        api_key: str | None = None,
        *,
        dry_run: bool = False,
    ) -> None:
        super().__init__(provider=config.name, dry_run=dry_run)
        self.config = config
        self.api_key = api_key
        self._client: AsyncOpenAI | None = None
        self._client_loop: asyncio.AbstractEventLoop | None = None

    def _resolve_api_key(self) -> str:
        key = self.api_key or os.getenv(self.config.api_key_env)
        if not key:
            raise MissingCredentialError()
        return key

    def _get_client(self) -> AsyncOpenAI:
        # The SDK connection pool is bound to the loop it was first used on;
        # each asyncio.run() in the blocking API brings a fresh loop.
        loop = _running_loop()
        if self._client is not None:
            if self._client_loop is None or self._client_loop is loop:
                return self._client
            logger.debug("Rebuilding %s client for a new event loop", self.provider)
            self._client = None

        key = self._resolve_api_key()
        kwargs: dict[str, Any] = {
            "api_key": key,
            "timeout": self.config.timeout_seconds,
            # Retries are owned by the invoker.
            "max_retries": 0,
        }
        if self.config.base_url:
            kwargs["base_url"] = self.config.base_url
        if self.config.extra_headers:
            kwargs["default_headers"] = dict(self.config.extra_headers)

        logger.debug("Creating %s client (key=%s)", self.provider, mask_secret(key))
        self._client = AsyncOpenAI(**kwargs)
        self._client_loop = loop
        return self._client

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
        if self.dry_run:
            return self._mock_response(model_id=model_id, messages=messages)

        client = self._get_client()
        request: dict[str, Any] = {
            "model": model_id,
            "messages": messages,
            "temperature": temperature,
            self.config.max_tokens_field: max_tokens,
            "stream": streaming,
            "timeout": timeout_seconds,
        }

        try:
            if streaming:
                if self.config.stream_usage:
                    request["stream_options"] = {"include_usage": True}
                text, usage, raw = await self._consume_stream(client, request, cancel_token)
            else:
                response = await client.chat.completions.create(**request)
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()
                text, usage, raw = self._parse_response(response)
        except openai.APITimeoutError as exc:
            raise TransportError(f"timeout after {timeout_seconds:g}s") from exc
        except openai.APIConnectionError as exc:
            raise TransportError(f"connection error: {exc}") from exc
        except openai.APIStatusError as exc:
            raise ProviderError(
                describe_status_error(exc.status_code, model_id, exc.body),
                status_code=exc.status_code,
            ) from exc
        except openai.APIError as exc:
            raise ProviderError(f"provider error: {exc.message}") from exc

        return Completion(text=text, model_id=model_id, usage=usage, raw=raw)

    async def _consume_stream(
        self,
        client: AsyncOpenAI,
        request: dict[str, Any],
        cancel_token: CancellationToken | None,
    ) -> tuple[str, TokenUsage, dict[str, Any]]:
        stream = await client.chat.completions.create(**request)
        pieces: list[str] = []
        usage_payload: Any = None
        chunks = 0
        try:
            async for chunk in stream:
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()
                chunks += 1
                if getattr(chunk, "usage", None) is not None:
                    usage_payload = chunk.usage
                choices = getattr(chunk, "choices", None) or []
                if not choices:
                    continue
                delta = getattr(choices[0], "delta", None)
                content = getattr(delta, "content", None)
                if content:
                    pieces.append(content)
        finally:
            close_fn = getattr(stream, "close", None)
            if close_fn is not None:
                maybe_coro = close_fn()
                if asyncio.iscoroutine(maybe_coro):
                    await maybe_coro

        text = "".join(pieces).strip()
        if not text:
            raise MalformedResponseError(f"malformed response: stream of {chunks} chunk(s) carried no content")
        return text, TokenUsage.from_payload(usage_payload), {"chunks": chunks}

    @staticmethod
    def _parse_response(response: Any) -> tuple[str, TokenUsage, dict[str, Any]]:
        choices = getattr(response, "choices", None)
        if not choices:
            raise MalformedResponseError("malformed response: no choices")

        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None)
        if not isinstance(content, str) or not content.strip():
            raise MalformedResponseError("malformed response: empty message content")

        usage = TokenUsage.from_payload(getattr(response, "usage", None))
        return content.strip(), usage, {"id": getattr(response, "id", None)}

    def _mock_response(self, *, model_id: str, messages: list[dict[str, str]]) -> Completion:
        prompt = messages[-1]["content"] if messages else ""
        seed = hash((model_id, prompt[:80])) % 1_000_000
        rnd = random.Random(seed)
        sample = prompt.split()[:40]
        text = "[DRY-RUN:{}] {}".format(model_id, " ".join(sample) or "empty prompt")
        prompt_tokens = max(8, len(prompt) // 4)
        completion_tokens = max(16, len(text) // 3 + rnd.randint(0, 8))
        return Completion(
            text=text,
            model_id=model_id,
            usage=TokenUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
            raw={"dry_run": True, "provider": self.provider},
        )

    async def close(self) -> None:
        if self._client is None:
            await asyncio.sleep(0)
            return

        stale = self._client_loop is not None and self._client_loop is not _running_loop()
        if not stale:
            await self._client.close()
        self._client = None
        self._client_loop = None
