"""Caller-facing entry points.

The ``a``-prefixed coroutines are the core; the plain functions block on them
with ``asyncio.run`` for callers without an event loop.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Sequence

from .dispatcher import DEFAULT_MAX_CONCURRENT, Dispatcher
from .errors import EmptySelectionError, InvalidArgumentError
from .invoker import InvocationParams, ModelInvoker, validate_prompt
from .models.base import BaseGatewayClient
from .models.providers import build_clients
from .registry import DEFAULT_REGISTRY, ModelRegistry, list_models
from .results import BatchResult
from .selector import SelectionRequest, select_models
from .utils.cancellation import CancellationToken


DEFAULT_SELECTION = (
    "meta-llama/Llama-3.3-70B-Instruct",
    "deepseek-ai/DeepSeek-R1",
    "Qwen/Qwen3-235B-A22B-FP8",
)
RANDOM_SMALL_COUNT = 5

__all__ = [
    "list_models",
    "dispatch",
    "adispatch",
    "dispatch_random",
    "adispatch_random",
    "dispatch_random_small",
    "adispatch_random_small",
]


async def adispatch(
    prompt: str,
    models: Sequence[str] | None = None,
    *,
    selection: SelectionRequest | None = None,
    params: InvocationParams | None = None,
    parallel: bool = True,
    max_models: int | None = None,
    registry: ModelRegistry | None = None,
    clients: Mapping[str, BaseGatewayClient] | None = None,
    cancel_token: CancellationToken | None = None,
    max_concurrent: int = DEFAULT_MAX_CONCURRENT,
    dry_run: bool = False,
    logger: logging.Logger | None = None,
) -> BatchResult:
    """Resolve the model set, then fan ``prompt`` out to it.

    ``models`` is an explicit id list (unknown ids are skipped with a warning);
    ``selection`` describes a registry-driven pick. With neither, three default
    models from different families are used.

    Raises:
        InvalidArgumentError: bad prompt/params or both ``models`` and ``selection``.
        EmptySelectionError: nothing left to dispatch.
    """
    validate_prompt(prompt)
    params = params or InvocationParams()
    params.validate()
    if models is not None and selection is not None:
        raise InvalidArgumentError("Pass either models or selection, not both")

    registry = registry or DEFAULT_REGISTRY
    if selection is None:
        explicit = list(models) if models is not None else list(DEFAULT_SELECTION)
        if not explicit:
            raise EmptySelectionError("models must not be empty")
        selection = SelectionRequest(
            models=explicit,
            max_models=max_models if max_models is not None else len(explicit),
        )
    resolved = select_models(selection, registry)

    owned_clients = clients is None
    active_clients = build_clients(dry_run=dry_run) if clients is None else clients
    invoker = ModelInvoker(active_clients, registry, logger=logger)
    dispatcher = Dispatcher(invoker, max_concurrent=max_concurrent, logger=logger)
    try:
        return await dispatcher.dispatch(
            resolved,
            prompt,
            params,
            parallel=parallel,
            cancel_token=cancel_token,
        )
    finally:
        if owned_clients:
            for client in active_clients.values():
                await client.close()


async def adispatch_random(
    prompt: str,
    n: int = 10,
    balanced: bool = True,
    exclude: Sequence[str] = (),
    *,
    seed: int | None = None,
    category: str | None = None,
    **kwargs: Any,
) -> BatchResult:
    """Dispatch to ``n`` registry models, balanced across families by default."""
    selection = SelectionRequest(
        max_models=n,
        category_filter=category,
        random=not balanced,
        balanced=balanced,
        exclude=list(exclude),
        seed=seed,
    )
    result = await adispatch(prompt, selection=selection, **kwargs)
    result.selection_method = "balanced" if balanced else "random"
    result.excluded_models = list(exclude)
    return result


async def adispatch_random_small(prompt: str, **kwargs: Any) -> BatchResult:
    """Quick balanced run over five models."""
    return await adispatch_random(prompt, n=RANDOM_SMALL_COUNT, balanced=True, **kwargs)


def dispatch(prompt: str, models: Sequence[str] | None = None, **kwargs: Any) -> BatchResult:
    """Blocking form of :func:`adispatch`."""
    return asyncio.run(adispatch(prompt, models, **kwargs))


def dispatch_random(
    prompt: str,
    n: int = 10,
    balanced: bool = True,
    exclude: Sequence[str] = (),
    **kwargs: Any,
) -> BatchResult:
    """Blocking form of :func:`adispatch_random`."""
    return asyncio.run(adispatch_random(prompt, n, balanced, exclude, **kwargs))


def dispatch_random_small(prompt: str, **kwargs: Any) -> BatchResult:
    """Blocking form of :func:`adispatch_random_small`."""
    return asyncio.run(adispatch_random_small(prompt, **kwargs))
