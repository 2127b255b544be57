"""Tests for fan-out dispatch and aggregation."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from multillm.dispatcher import Dispatcher
from multillm.errors import EmptySelectionError, InvalidArgumentError, ProviderError, TransportError
from multillm.invoker import InvocationParams, ModelInvoker
from multillm.models.base import BaseGatewayClient, Completion, TokenUsage
from multillm.utils.cancellation import CancellationToken


class DelayedClient(BaseGatewayClient):
    """Gateway stub with per-model latency, outcome and token usage."""

    def __init__(self, outcomes: dict[str, Any], delays: dict[str, float] | None = None) -> None:
        super().__init__(provider="ionet")
        self.outcomes = outcomes
        self.delays = delays or {}
        self.in_flight = 0
        self.peak_in_flight = 0
        self.on_call = None

    async def complete(self, *, model_id, messages, max_tokens, temperature, timeout_seconds, streaming=False, cancel_token=None):
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(model_id, 0.0))
            if self.on_call is not None:
                self.on_call(model_id)
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            outcome = self.outcomes[model_id]
            if isinstance(outcome, BaseException):
                raise outcome
            tokens = len(outcome)
            return Completion(text=outcome, model_id=model_id, usage=TokenUsage(1, tokens, tokens + 1))
        finally:
            self.in_flight -= 1


def _dispatcher(client: DelayedClient, max_concurrent: int = 6) -> Dispatcher:
    return Dispatcher(ModelInvoker({"ionet": client}), max_concurrent=max_concurrent)


def test_partial_failure_sequential() -> None:
    """One success and one HTTP 500 give a 50% success rate."""
    client = DelayedClient({"m1": "Hello!", "m2": ProviderError("HTTP 500: Internal Server Error - oops", 500)})
    batch = asyncio.run(_dispatcher(client).dispatch(["m1", "m2"], "Hi", parallel=False))

    assert [r.model for r in batch.results] == ["m1", "m2"]
    assert batch.results[0].success
    assert not batch.results[1].success
    assert batch.results[1].error.startswith("HTTP 500")
    assert batch.summary.total_models == 2
    assert batch.summary.successful == 1
    assert batch.summary.failed == 1
    assert batch.summary.success_rate == 0.5
    assert batch.summary.failed_model_names == ["m2"]
    assert [r.model for r in batch.errors] == ["m2"]


def test_parallel_results_keep_input_order() -> None:
    """Completion order differs from input order; results do not."""
    models = ["slow", "medium", "fast"]
    client = DelayedClient(
        {m: f"answer-{m}" for m in models},
        delays={"slow": 0.3, "medium": 0.15, "fast": 0.0},
    )
    batch = asyncio.run(_dispatcher(client).dispatch(models, "Hi", parallel=True))
    assert [r.model for r in batch.results] == models
    assert [r.response_text for r in batch.results] == [f"answer-{m}" for m in models]
    assert batch.models_used == models


def test_parallel_wall_clock_is_not_the_sum() -> None:
    models = ["a", "b", "c"]
    client = DelayedClient({m: "ok" for m in models}, delays={m: 0.3 for m in models})

    parallel = asyncio.run(_dispatcher(client).dispatch(models, "Hi", parallel=True))
    sequential = asyncio.run(_dispatcher(client).dispatch(models, "Hi", parallel=False))

    assert parallel.summary.total_execution_time < 0.75
    assert sequential.summary.total_execution_time >= 0.85
    assert client.peak_in_flight == 3


def test_max_concurrent_bounds_in_flight_calls() -> None:
    models = [f"m{i}" for i in range(5)]
    client = DelayedClient({m: "ok" for m in models}, delays={m: 0.05 for m in models})
    batch = asyncio.run(_dispatcher(client, max_concurrent=2).dispatch(models, "Hi"))
    assert batch.summary.successful == 5
    assert client.peak_in_flight == 2


def test_summary_invariants_and_token_totals() -> None:
    client = DelayedClient(
        {
            "a": "four",
            "b": TransportError("timeout after 1s"),
            "c": "twelve chars",
        }
    )
    batch = asyncio.run(_dispatcher(client).dispatch(["a", "b", "c"], "Hi"))
    s = batch.summary

    assert s.successful + s.failed == s.total_models == 3
    assert s.success_rate == pytest.approx(2 / 3)
    assert s.total_tokens_used == sum(r.usage.total_tokens for r in batch.results if r.success) == 5 + 13
    assert s.avg_model_time == pytest.approx(sum(r.execution_time for r in batch.results) / 3)
    assert s.min_model_time <= s.avg_model_time <= s.max_model_time


def test_all_failures_still_return_a_batch() -> None:
    client = DelayedClient({"a": ProviderError("HTTP 401", 401), "b": RuntimeError("bad")})
    batch = asyncio.run(_dispatcher(client).dispatch(["a", "b"], "Hi"))
    assert batch.summary.success_rate == 0.0
    assert batch.summary.total_tokens_used == 0
    assert "[ERROR] Failed models:" in batch.format_report()


def test_empty_model_list_raises() -> None:
    with pytest.raises(EmptySelectionError):
        asyncio.run(_dispatcher(DelayedClient({})).dispatch([], "Hi"))


def test_invalid_prompt_and_params_raise() -> None:
    client = DelayedClient({"a": "ok"})
    with pytest.raises(InvalidArgumentError):
        asyncio.run(_dispatcher(client).dispatch(["a"], ""))
    with pytest.raises(InvalidArgumentError):
        asyncio.run(_dispatcher(client).dispatch(["a"], "Hi", InvocationParams(temperature=-1)))


def test_cancelled_before_start_marks_every_model() -> None:
    token = CancellationToken()
    token.cancel()
    client = DelayedClient({"a": "ok", "b": "ok"})
    batch = asyncio.run(_dispatcher(client).dispatch(["a", "b"], "Hi", cancel_token=token))

    assert batch.cancelled
    assert len(batch.results) == 2
    assert all(r.error == "cancelled" for r in batch.results)
    assert client.peak_in_flight == 0


def test_cancel_mid_batch_keeps_finished_results() -> None:
    """Models after the cancel point fail with 'cancelled'; earlier ones stay."""
    token = CancellationToken()
    client = DelayedClient({"a": "ok", "b": "ok", "c": "ok"})
    client.on_call = lambda model_id: token.cancel() if model_id == "b" else None

    batch = asyncio.run(_dispatcher(client).dispatch(["a", "b", "c"], "Hi", parallel=False, cancel_token=token))

    assert [r.success for r in batch.results] == [True, False, False]
    assert batch.results[1].error == "cancelled"
    assert batch.results[2].error == "cancelled"
    assert batch.cancelled


def test_cancel_after_every_model_finished_is_not_a_cancelled_batch() -> None:
    token = CancellationToken()

    class CancelOnReturnClient(DelayedClient):
        async def complete(self, **kwargs):
            completion = await super().complete(**kwargs)
            if kwargs["model_id"] == "b":
                token.cancel()
            return completion

    client = CancelOnReturnClient({"a": "ok", "b": "ok"})
    batch = asyncio.run(_dispatcher(client).dispatch(["a", "b"], "Hi", parallel=False, cancel_token=token))

    assert token.is_cancelled
    assert all(r.success for r in batch.results)
    assert not batch.cancelled
