"""Resolve a selection request into a concrete, ordered list of model ids."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import random

from .errors import EmptySelectionError, InvalidArgumentError
from .registry import DEFAULT_REGISTRY, ModelRegistry


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SelectionRequest:
    """Explicit model list or selection parameters."""

    models: list[str] = field(default_factory=list)
    max_models: int = 6
    category_filter: str | None = None
    random: bool = False
    balanced: bool = False
    exclude: list[str] = field(default_factory=list)
    seed: int | None = None


def _explicit_pool(request: SelectionRequest, registry: ModelRegistry) -> list[str]:
    unique: list[str] = []
    for model_id in request.models:
        if model_id not in unique:
            unique.append(model_id)

    valid = [m for m in unique if m in registry]
    for model_id in unique:
        if model_id in registry:
            continue
        suggestions = registry.suggest_similar(model_id)[:2]
        if suggestions:
            logger.warning("Skipping unknown model '%s' (similar: %s)", model_id, ", ".join(suggestions))
        else:
            logger.warning("Skipping unknown model '%s'", model_id)
    return valid


def balanced_sample(
    pool: list[str],
    registry: ModelRegistry,
    count: int,
    rng: random.Random,
) -> list[str]:
    """Round-robin across families so no family dominates the sample.

    Members of each family and the family visiting order are shuffled with
    ``rng``; a family only contributes its n-th id after every family that still
    has candidates contributed n - 1.
    """
    groups = [list(ids) for ids in registry.families(pool).values()]
    for ids in groups:
        rng.shuffle(ids)
    rng.shuffle(groups)

    selected: list[str] = []
    while len(selected) < count and any(groups):
        for ids in groups:
            if not ids:
                continue
            selected.append(ids.pop(0))
            if len(selected) == count:
                break
    return selected


def select_models(request: SelectionRequest, registry: ModelRegistry | None = None) -> list[str]:
    """Resolve ``request`` against ``registry``.

    Raises:
        InvalidArgumentError: ``max_models`` is not a non-negative int.
        EmptySelectionError: nothing left to dispatch.
    """
    registry = registry or DEFAULT_REGISTRY
    if isinstance(request.max_models, bool) or not isinstance(request.max_models, int):
        raise InvalidArgumentError("max_models must be an integer")
    if request.max_models < 0:
        raise InvalidArgumentError("max_models must be >= 0")
    if request.max_models == 0:
        raise EmptySelectionError("max_models is 0; nothing to dispatch")

    if request.models:
        pool = _explicit_pool(request, registry)
    else:
        pool = list(registry.list_models(request.category_filter))

    excluded = set(request.exclude)
    pool = [m for m in pool if m not in excluded]

    rng = random.Random(request.seed)
    if request.balanced:
        selected = balanced_sample(pool, registry, request.max_models, rng)
    elif request.random:
        selected = rng.sample(pool, min(request.max_models, len(pool)))
    else:
        selected = pool[: request.max_models]

    if not selected:
        raise EmptySelectionError(
            f"No models left after selection (category={request.category_filter!r}, "
            f"explicit={len(request.models)}, excluded={len(excluded)})"
        )

    logger.debug("Selected %d model(s): %s", len(selected), ", ".join(selected))
    return selected
