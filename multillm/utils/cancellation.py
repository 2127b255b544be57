"""Cooperative cancellation for in-flight dispatches."""

from __future__ import annotations

import threading

from ..errors import DispatchCancelledError


class CancellationToken:
    """Thread-safe flag checked by the dispatcher and gateway clients.

    ``cancel()`` may be called from any thread, e.g. while a synchronous
    ``dispatch`` blocks another one.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise DispatchCancelledError()
