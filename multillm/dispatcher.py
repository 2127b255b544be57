"""Fan one prompt out to many models and aggregate the outcomes."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Sequence

from .errors import DispatchCancelledError, EmptySelectionError
from .invoker import InvocationParams, ModelInvoker, validate_prompt
from .results import BatchResult, InvocationResult, summarize_results
from .utils.cancellation import CancellationToken
from .utils.logging_config import preview


DEFAULT_MAX_CONCURRENT = 6


class Dispatcher:
    """Invokes every model of a batch, sequentially or concurrently.

    Every input model yields exactly one result, in input order. Only
    structural problems (empty model list, bad prompt or params) raise.
    """

    def __init__(
        self,
        invoker: ModelInvoker,
        *,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        logger: logging.Logger | None = None,
    ) -> None:
        self.invoker = invoker
        self.max_concurrent = max(1, max_concurrent)
        self.logger = logger or logging.getLogger(__name__)

    async def dispatch(
        self,
        models: Sequence[str],
        prompt: str,
        params: InvocationParams | None = None,
        *,
        parallel: bool = True,
        cancel_token: CancellationToken | None = None,
    ) -> BatchResult:
        models = list(models)
        if not models:
            raise EmptySelectionError("No models to dispatch")
        validate_prompt(prompt)
        params = params or InvocationParams()
        params.validate()

        concurrent = parallel and len(models) > 1
        self.logger.info(
            "Dispatching %d model(s) %s | prompt: %s",
            len(models),
            "in parallel" if concurrent else "sequentially",
            preview(prompt),
        )

        started = time.perf_counter()
        if concurrent:
            results = await self._run_parallel(models, prompt, params, cancel_token)
        else:
            results = await self._run_sequential(models, prompt, params, cancel_token)
        elapsed = time.perf_counter() - started

        summary = summarize_results(results, elapsed)
        cancelled = any(r.error_type == DispatchCancelledError.__name__ for r in results)
        self.logger.info(
            "Batch finished in %.2fs | success %d/%d | tokens=%d%s",
            elapsed,
            summary.successful,
            summary.total_models,
            summary.total_tokens_used,
            " | cancelled" if cancelled else "",
        )
        return BatchResult(results=results, summary=summary, models_used=models, cancelled=cancelled)

    def _log_progress(self, result: InvocationResult, done: int, total: int) -> None:
        status = "[OK]" if result.success else "[ERROR]"
        self.logger.info("  %s %s completed (%d/%d) in %.2fs", status, result.model, done, total, result.execution_time)

    async def _run_sequential(
        self,
        models: list[str],
        prompt: str,
        params: InvocationParams,
        cancel_token: CancellationToken | None,
    ) -> list[InvocationResult]:
        results: list[InvocationResult] = []
        for idx, model_id in enumerate(models, start=1):
            result = await self.invoker.invoke(model_id, prompt, params, cancel_token=cancel_token)
            results.append(result)
            self._log_progress(result, idx, len(models))
        return results

    async def _run_parallel(
        self,
        models: list[str],
        prompt: str,
        params: InvocationParams,
        cancel_token: CancellationToken | None,
    ) -> list[InvocationResult]:
        semaphore = asyncio.Semaphore(self.max_concurrent)
        state = {"completed": 0}

        async def _run_with_semaphore(model_id: str) -> InvocationResult:
            async with semaphore:
                result = await self.invoker.invoke(model_id, prompt, params, cancel_token=cancel_token)
            state["completed"] += 1
            self._log_progress(result, state["completed"], len(models))
            return result

        # gather keeps input order regardless of completion order.
        return list(await asyncio.gather(*[_run_with_semaphore(model_id) for model_id in models]))
