"""Cooperative cancellation for a push cycle."""

from __future__ import annotations

import threading

from ..errors import OperationCancelled


class CancelToken:
    """Flag checked between steps and before every remote request.

    ``cancel()`` may be called from another thread (or a signal handler);
    the running cycle notices at its next checkpoint and raises
    ``OperationCancelled`` without touching the baseline.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, step: str | None = None) -> None:
        if self._event.is_set():
            where = f" during {step}" if step else ""
            raise OperationCancelled(f"Operation cancelled{where}")
