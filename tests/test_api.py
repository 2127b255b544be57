"""Tests for the blocking caller-facing API and convenience wrappers."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from multillm import api
from multillm.errors import EmptySelectionError, InvalidArgumentError, ProviderError
from multillm.invoker import InvocationParams
from multillm.models import openai_compat
from multillm.models.base import BaseGatewayClient, Completion, TokenUsage
from multillm.models.providers import IONET, build_clients
from multillm.registry import DEFAULT_REGISTRY, ModelDescriptor, ModelRegistry
from multillm.selector import SelectionRequest


class EchoClient(BaseGatewayClient):
    """Answers with the model id unless told to fail."""

    def __init__(self, failing: set[str] | None = None) -> None:
        super().__init__(provider="ionet")
        self.failing = failing or set()
        self.closed = False

    async def complete(self, *, model_id, messages, max_tokens, temperature, timeout_seconds, streaming=False, cancel_token=None):
        if model_id in self.failing:
            raise ProviderError("HTTP 500: Internal Server Error - down", status_code=500)
        return Completion(text=f"echo from {model_id}", model_id=model_id, usage=TokenUsage(2, 3, 5))

    async def close(self) -> None:
        self.closed = True


def test_dispatch_defaults_to_three_models_in_dry_run() -> None:
    batch = api.dispatch("Explain quantum computing in simple terms", dry_run=True)
    assert batch.models_used == list(api.DEFAULT_SELECTION)
    assert batch.summary.successful == 3
    assert all(r.response_text.startswith("[DRY-RUN:") for r in batch.results)
    assert batch.summary.total_tokens_used > 0


def test_dispatch_explicit_models_with_custom_registry() -> None:
    registry = ModelRegistry([ModelDescriptor(id="m1", family="x"), ModelDescriptor(id="m2", family="y")])
    client = EchoClient(failing={"m2"})
    batch = api.dispatch("Hi", ["m1", "m2"], parallel=False, registry=registry, clients={"ionet": client})

    assert [r.model for r in batch.results] == ["m1", "m2"]
    assert batch.results[0].response_text == "echo from m1"
    assert batch.results[1].error.startswith("HTTP 500")
    assert batch.summary.success_rate == 0.5
    assert client.closed is False


def test_dispatch_with_selection_request() -> None:
    selection = SelectionRequest(category_filter="mistral", max_models=2)
    batch = api.dispatch("Hi", selection=selection, clients={"ionet": EchoClient()})
    assert batch.models_used == ["mistralai/Devstral-Small-2505", "mistralai/Magistral-Small-2506"]


def test_dispatch_rejects_models_and_selection_together() -> None:
    with pytest.raises(InvalidArgumentError):
        api.dispatch("Hi", ["m1"], selection=SelectionRequest(), clients={"ionet": EchoClient()})


def test_dispatch_only_unknown_models_raises() -> None:
    with pytest.raises(EmptySelectionError):
        api.dispatch("Hi", ["not/a-model"], clients={"ionet": EchoClient()})


def test_dispatch_rejects_empty_prompt() -> None:
    with pytest.raises(InvalidArgumentError):
        api.dispatch("", clients={"ionet": EchoClient()})


def test_dispatch_random_is_balanced_by_default() -> None:
    batch = api.dispatch_random("Hi", n=7, seed=5, clients={"ionet": EchoClient()})
    families = {DEFAULT_REGISTRY.get(m).family for m in batch.models_used}
    assert len(batch.results) == 7
    assert len(families) == 7
    assert batch.selection_method == "balanced"


def test_dispatch_random_pure_random_with_exclusions() -> None:
    excluded = ["microsoft/phi-4", "openbmb/MiniCPM3-4B"]
    batch = api.dispatch_random("Hi", n=10, balanced=False, exclude=excluded, seed=1, clients={"ionet": EchoClient()})
    assert len(batch.results) == 10
    assert not set(excluded) & set(batch.models_used)
    assert batch.selection_method == "random"
    assert batch.excluded_models == excluded


def test_dispatch_random_small_uses_five_models() -> None:
    batch = api.dispatch_random_small("Hi", seed=9, clients={"ionet": EchoClient()})
    assert batch.summary.total_models == 5
    assert len(set(batch.models_used)) == 5
    first = api.dispatch_random_small("Hi", seed=9, clients={"ionet": EchoClient()})
    assert first.models_used == batch.models_used


def test_batch_result_serializes() -> None:
    batch = api.dispatch("Hi", ["microsoft/phi-4"], clients={"ionet": EchoClient()})
    payload = batch.to_dict()
    assert payload["summary"]["total_models"] == 1
    assert payload["results"][0]["usage"]["total_tokens"] == 5
    assert "Success rate: 100.0%" in batch.format_report()


def test_dispatch_empty_model_list_is_an_empty_selection() -> None:
    with pytest.raises(EmptySelectionError):
        api.dispatch("Hi", [], clients={"ionet": EchoClient()})


class LoopBoundSDK:
    """Stands in for ``AsyncOpenAI``: usable only on the loop it was created on."""

    instances: list["LoopBoundSDK"] = []

    def __init__(self, **kwargs) -> None:
        self.kwargs = kwargs
        self.loop = asyncio.get_running_loop()
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))
        LoopBoundSDK.instances.append(self)

    async def _create(self, **request):
        if asyncio.get_running_loop() is not self.loop:
            raise RuntimeError("Event loop is closed")
        return SimpleNamespace(
            id="chatcmpl-1",
            choices=[SimpleNamespace(message=SimpleNamespace(content=f"hi from {request['model']}"))],
            usage=SimpleNamespace(prompt_tokens=1, completion_tokens=2, total_tokens=3),
        )

    async def close(self) -> None:
        pass


def test_built_clients_survive_repeated_blocking_calls(monkeypatch: pytest.MonkeyPatch) -> None:
    LoopBoundSDK.instances.clear()
    monkeypatch.setattr(openai_compat, "AsyncOpenAI", LoopBoundSDK)
    clients = build_clients({"ionet": IONET}, api_keys={"ionet": "io-key"})
    params = InvocationParams(streaming=False)

    batches = [api.dispatch("Hi", ["microsoft/phi-4"], params=params, clients=clients) for _ in range(3)]

    assert [b.results[0].success for b in batches] == [True, True, True]
    assert batches[2].results[0].response_text == "hi from microsoft/phi-4"
    assert len(LoopBoundSDK.instances) == 3
