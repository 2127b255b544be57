"""Per-model results, batch summary and the text report."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from .models.base import TokenUsage


def utc_now_iso() -> str:
    """Return UTC timestamp in ISO-8601 format."""
    return datetime.now(tz=timezone.utc).isoformat()


@dataclass(slots=True)
class InvocationResult:
    """Outcome of one model call.

    Successful results carry ``response_text`` and ``usage``; failed ones carry
    ``error``. ``execution_time`` is always set, in seconds.
    """

    model: str
    success: bool
    execution_time: float
    response_text: str | None = None
    usage: TokenUsage | None = None
    error: str | None = None
    error_type: str | None = None
    timestamp: str = field(default_factory=utc_now_iso)

    @classmethod
    def ok(cls, model: str, text: str, usage: TokenUsage, execution_time: float) -> "InvocationResult":
        return cls(model=model, success=True, execution_time=max(0.0, execution_time), response_text=text, usage=usage)

    @classmethod
    def failed(
        cls,
        model: str,
        error: str,
        execution_time: float,
        error_type: str | None = None,
    ) -> "InvocationResult":
        return cls(
            model=model,
            success=False,
            execution_time=max(0.0, execution_time),
            error=error,
            error_type=error_type,
        )

    @property
    def total_tokens(self) -> int:
        return self.usage.total_tokens if self.success and self.usage is not None else 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "success": self.success,
            "response_text": self.response_text,
            "usage": self.usage.to_dict() if self.usage is not None else None,
            "error": self.error,
            "error_type": self.error_type,
            "execution_time": self.execution_time,
            "timestamp": self.timestamp,
        }


@dataclass(slots=True)
class DispatchSummary:
    """Aggregate statistics over one batch."""

    total_models: int
    successful: int
    failed: int
    success_rate: float
    total_execution_time: float
    avg_model_time: float
    min_model_time: float
    max_model_time: float
    total_tokens_used: int
    failed_model_names: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_models": self.total_models,
            "successful": self.successful,
            "failed": self.failed,
            "success_rate": self.success_rate,
            "total_execution_time": self.total_execution_time,
            "avg_model_time": self.avg_model_time,
            "min_model_time": self.min_model_time,
            "max_model_time": self.max_model_time,
            "total_tokens_used": self.total_tokens_used,
            "failed_model_names": list(self.failed_model_names),
        }


def summarize_results(results: list[InvocationResult], total_execution_time: float) -> DispatchSummary:
    """Aggregate a batch; per-model times cover successes and failures alike."""
    total = len(results)
    successful = sum(1 for r in results if r.success)
    times = [r.execution_time for r in results]

    return DispatchSummary(
        total_models=total,
        successful=successful,
        failed=total - successful,
        success_rate=(successful / total) if total else 0.0,
        total_execution_time=max(0.0, total_execution_time),
        avg_model_time=(sum(times) / total) if total else 0.0,
        min_model_time=min(times) if times else 0.0,
        max_model_time=max(times) if times else 0.0,
        total_tokens_used=sum(r.total_tokens for r in results),
        failed_model_names=[r.model for r in results if not r.success],
    )


@dataclass(slots=True)
class BatchResult:
    """Top-level return value of a dispatch; owned by the caller."""

    results: list[InvocationResult]
    summary: DispatchSummary
    models_used: list[str] = field(default_factory=list)
    cancelled: bool = False
    selection_method: str | None = None
    excluded_models: list[str] = field(default_factory=list)
    timestamp: str = field(default_factory=utc_now_iso)

    @property
    def errors(self) -> list[InvocationResult]:
        return [r for r in self.results if not r.success]

    def by_model(self) -> dict[str, InvocationResult]:
        return {r.model: r for r in self.results}

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "summary": self.summary.to_dict(),
            "models_used": list(self.models_used),
            "cancelled": self.cancelled,
            "selection_method": self.selection_method,
            "excluded_models": list(self.excluded_models),
            "timestamp": self.timestamp,
        }

    def format_report(self) -> str:
        s = self.summary
        lines = [
            "Multi-LLM Execution Result",
            "==========================",
            "",
            ">> Summary:",
            f"  Models executed: {s.total_models}",
            f"  Successful: {s.successful}",
            f"  Failed: {s.failed}",
            f"  Success rate: {s.success_rate * 100:.1f}%",
            f"  Total time: {s.total_execution_time:.2f} seconds",
            f"  Average time per model: {s.avg_model_time:.2f} seconds",
            f"  Total tokens used: {s.total_tokens_used}",
        ]
        if self.cancelled:
            lines.append("  Cancelled: yes")
        if s.failed:
            lines += ["", "[ERROR] Failed models:"]
            lines += [f"  - {r.model}: {r.error}" for r in self.errors]
        lines += ["", f">> Successful responses available for {s.successful} models"]
        return "\n".join(lines)
