"""Error taxonomy for model invocation and dispatch.

Per-model errors are caught by the invoker and folded into
``InvocationResult.error``. Only batch-level errors reach the caller.
"""

from __future__ import annotations


class MultiLLMError(Exception):
    """Base class for all package errors."""


class InvocationError(MultiLLMError):
    """Failure of a single model call; recovered locally."""


class TransportError(InvocationError):
    """Network, timeout or connection failure."""


class ProviderError(InvocationError):
    """Non-2xx response or provider-reported error payload."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return self.status_code == 429 or (self.status_code is not None and self.status_code >= 500)


class MalformedResponseError(InvocationError):
    """Response body lacked the expected completion fields."""


class MissingCredentialError(InvocationError):
    """No API key available for the model's provider."""

    def __init__(self, message: str = "missing credential") -> None:
        super().__init__(message)


class DispatchCancelledError(InvocationError):
    """The caller cancelled the batch before this model finished."""

    def __init__(self, message: str = "cancelled") -> None:
        super().__init__(message)


class EmptySelectionError(MultiLLMError):
    """Model selection resolved to zero models."""


class InvalidArgumentError(MultiLLMError, ValueError):
    """Bad prompt or generation parameter; raised before any network call."""
