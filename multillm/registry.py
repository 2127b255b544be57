"""Static registry of models reachable through the inference gateways.

The default table mirrors the io.net catalog. Custom registries can be loaded
from YAML with :func:`load_model_registry`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import re
from types import MappingProxyType
from typing import Any, Mapping

import yaml

from .errors import InvalidArgumentError


ALL_CATEGORIES = "all"

FAMILY_DESCRIPTIONS: Mapping[str, str] = MappingProxyType(
    {
        "llama": "Meta's Llama series - multimodal models with expert architectures and strong general capabilities",
        "deepseek": "DeepSeek series - reasoning and inference models with o1-like capabilities",
        "qwen": "Alibaba's Qwen series - MoE models with multilingual and vision support",
        "mistral": "Mistral AI series - software engineering and multilingual models",
        "reasoning": "Reasoning specialized models - mathematical problem solving and o1-like thinking",
        "compact": "Compact models - high performance with smaller parameter counts",
        "multilingual": "Multilingual and specialized models - language capabilities and embeddings",
        "other": "Other specialized model",
    }
)


@dataclass(frozen=True, slots=True)
class ModelDescriptor:
    """One invokable remote model."""

    id: str
    family: str
    provider: str = "ionet"
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @property
    def vendor(self) -> str:
        return self.id.split("/", 1)[0] if "/" in self.id else ""

    @property
    def tags(self) -> tuple[str, ...]:
        return tuple(str(tag) for tag in self.metadata.get("tags", ()))

    @property
    def description(self) -> str:
        return str(self.metadata.get("description") or FAMILY_DESCRIPTIONS.get(self.family, ""))

    def matches(self, category: str) -> bool:
        """Case-insensitive substring match on family, vendor and tags."""
        needle = category.strip().lower()
        if not needle:
            return False
        haystack = [self.family, self.vendor, *self.tags]
        return any(needle in value.lower() for value in haystack if value)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "family": self.family,
            "provider": self.provider,
            "vendor": self.vendor,
            "description": self.description,
            "metadata": dict(self.metadata),
        }


def _model(model_id: str, family: str, context_length: int, *tags: str) -> ModelDescriptor:
    return ModelDescriptor(
        id=model_id,
        family=family,
        metadata=MappingProxyType({"context_length": context_length, "tags": tuple(tags)}),
    )


DEFAULT_MODELS: tuple[ModelDescriptor, ...] = (
    _model("meta-llama/Llama-4-Maverick-17B-128E-Instruct-FP8", "llama", 430_000, "multimodal", "moe"),
    _model("meta-llama/Llama-3.3-70B-Instruct", "llama", 128_000, "general"),
    _model("meta-llama/Llama-3.2-90B-Vision-Instruct", "llama", 16_000, "vision"),
    _model("deepseek-ai/DeepSeek-R1-0528", "deepseek", 128_000, "reasoning"),
    _model("deepseek-ai/DeepSeek-R1", "deepseek", 128_000, "reasoning"),
    _model("deepseek-ai/DeepSeek-R1-Distill-Llama-70B", "deepseek", 128_000, "reasoning", "distilled"),
    _model("deepseek-ai/DeepSeek-R1-Distill-Qwen-32B", "deepseek", 128_000, "reasoning", "distilled"),
    _model("Qwen/Qwen3-235B-A22B-FP8", "qwen", 128_000, "moe", "multilingual"),
    _model("Qwen/Qwen2.5-VL-32B-Instruct", "qwen", 128_000, "vision"),
    _model("google/gemma-3-27b-it", "multilingual", 128_000, "multimodal"),
    _model("mistralai/Devstral-Small-2505", "mistral", 128_000, "code", "agentic"),
    _model("mistralai/Magistral-Small-2506", "mistral", 40_000, "reasoning", "multilingual"),
    _model("mistralai/Mistral-Large-Instruct-2411", "mistral", 128_000, "general"),
    _model("mistralai/Ministral-8B-Instruct-2410", "mistral", 128_000, "compact"),
    _model("netease-youdao/Confucius-o1-14B", "reasoning", 32_000, "o1-like"),
    _model("nvidia/AceMath-7B-Instruct", "reasoning", 32_000, "math"),
    _model("microsoft/phi-4", "compact", 16_000, "small"),
    _model("bespokelabs/Bespoke-Stratos-32B", "multilingual", 32_000, "fine-tuned"),
    _model("THUDM/glm-4-9b-chat", "compact", 128_000, "chat"),
    _model("CohereForAI/aya-expanse-32b", "multilingual", 128_000, "multilingual"),
    _model("openbmb/MiniCPM3-4B", "compact", 32_000, "long-context"),
    _model("ibm-granite/granite-3.1-8b-instruct", "compact", 128_000, "long-context"),
    _model("BAAI/bge-multilingual-gemma2", "multilingual", 8_000, "embedding"),
)


class ModelRegistry:
    """Read-only, ordered collection of model descriptors."""

    def __init__(self, models: tuple[ModelDescriptor, ...] | list[ModelDescriptor]) -> None:
        self._models: tuple[ModelDescriptor, ...] = tuple(models)
        self._by_id: Mapping[str, ModelDescriptor] = MappingProxyType({m.id: m for m in self._models})
        if len(self._by_id) != len(self._models):
            raise InvalidArgumentError("Model registry contains duplicate ids")

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._by_id

    def __len__(self) -> int:
        return len(self._models)

    def get(self, model_id: str) -> ModelDescriptor | None:
        return self._by_id.get(model_id)

    def list_models(
        self,
        category: str | None = None,
        detailed: bool = False,
    ) -> list[str] | list[ModelDescriptor]:
        """Return ids (or descriptors) in registry order, optionally filtered."""
        if category is not None and not isinstance(category, str):
            raise InvalidArgumentError(f"category must be a string, got {type(category).__name__}")

        if category is None or category.strip().lower() in {"", ALL_CATEGORIES}:
            selected = list(self._models)
        else:
            selected = [m for m in self._models if m.matches(category)]

        if detailed:
            return selected
        return [m.id for m in selected]

    def families(self, model_ids: list[str] | None = None) -> dict[str, list[str]]:
        """Group ids by family, keeping first-seen family order."""
        ids = [m.id for m in self._models] if model_ids is None else model_ids
        grouped: dict[str, list[str]] = {}
        for model_id in ids:
            descriptor = self._by_id.get(model_id)
            family = descriptor.family if descriptor is not None else "other"
            grouped.setdefault(family, []).append(model_id)
        return grouped

    def suggest_similar(self, model_id: str, limit: int = 3) -> list[str]:
        """Registry ids sharing a name fragment with an unknown id."""
        parts = [p for p in re.split(r"[-_/]", model_id.lower()) if len(p) > 2]
        suggestions: list[str] = []
        for part in parts:
            for candidate in self._models:
                if part in candidate.id.lower() and candidate.id not in suggestions:
                    suggestions.append(candidate.id)
        return suggestions[:limit]


DEFAULT_REGISTRY = ModelRegistry(DEFAULT_MODELS)


def list_models(
    category: str | None = None,
    detailed: bool = False,
    registry: ModelRegistry | None = None,
) -> list[str] | list[ModelDescriptor]:
    """List models of the default (or given) registry."""
    return (registry or DEFAULT_REGISTRY).list_models(category=category, detailed=detailed)


def _descriptor_from_entry(model_id: str, entry: dict[str, Any] | None) -> ModelDescriptor:
    entry = entry or {}
    if not isinstance(entry, dict):
        raise InvalidArgumentError(f"Model entry for '{model_id}' must be a mapping")

    metadata: dict[str, Any] = {}
    if "context_length" in entry:
        metadata["context_length"] = int(entry["context_length"])
    if "tags" in entry:
        metadata["tags"] = tuple(str(tag) for tag in entry.get("tags") or ())
    if entry.get("description"):
        metadata["description"] = str(entry["description"])

    return ModelDescriptor(
        id=model_id,
        family=str(entry.get("family", "other")),
        provider=str(entry.get("provider", "ionet")),
        metadata=MappingProxyType(metadata),
    )


def load_model_registry(
    *,
    config_path: Path | None = None,
    raw_config: dict[str, Any] | None = None,
) -> ModelRegistry:
    """Build a registry from a YAML file or an already-parsed mapping."""
    if raw_config is None:
        if config_path is None:
            raise InvalidArgumentError("Either config_path or raw_config must be provided")
        raw_config = yaml.safe_load(config_path.read_text(encoding="utf-8"))

    if not isinstance(raw_config, dict) or not isinstance(raw_config.get("models"), dict):
        raise InvalidArgumentError("Registry config must be a mapping with a 'models' mapping")

    models = [_descriptor_from_entry(str(model_id), entry) for model_id, entry in raw_config["models"].items()]
    return ModelRegistry(models)
