"""Fan a prompt out to many hosted LLMs and aggregate the outcomes."""

from .api import (
    adispatch,
    adispatch_random,
    adispatch_random_small,
    dispatch,
    dispatch_random,
    dispatch_random_small,
)
from .conversation import ChatHistory
from .dispatcher import Dispatcher
from .errors import (
    EmptySelectionError,
    InvalidArgumentError,
    MalformedResponseError,
    MissingCredentialError,
    MultiLLMError,
    ProviderError,
    TransportError,
)
from .invoker import InvocationParams, ModelInvoker
from .registry import DEFAULT_REGISTRY, ModelDescriptor, ModelRegistry, list_models, load_model_registry
from .results import BatchResult, DispatchSummary, InvocationResult
from .selector import SelectionRequest, select_models
from .utils.cancellation import CancellationToken

__version__ = "0.3.0"

__all__ = [
    "adispatch",
    "adispatch_random",
    "adispatch_random_small",
    "dispatch",
    "dispatch_random",
    "dispatch_random_small",
    "ChatHistory",
    "Dispatcher",
    "EmptySelectionError",
    "InvalidArgumentError",
    "MalformedResponseError",
    "MissingCredentialError",
    "MultiLLMError",
    "ProviderError",
    "TransportError",
    "InvocationParams",
    "ModelInvoker",
    "DEFAULT_REGISTRY",
    "ModelDescriptor",
    "ModelRegistry",
    "list_models",
    "load_model_registry",
    "BatchResult",
    "DispatchSummary",
    "InvocationResult",
    "SelectionRequest",
    "select_models",
    "CancellationToken",
]
