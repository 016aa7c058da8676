"""Cooperative cancellation for a running action list."""
from __future__ import annotations

import logging
from typing import Callable, List

logger = logging.getLogger(__name__)


class CancellationToken:
    """Set by whatever hosts the run (signal handler, caller); checked between actions."""

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: List[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def add_callback(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` on cancel, or immediately if already cancelled."""
        if self._cancelled:
            callback()
            return
        self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[[], None]) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        logger.info("Cancellation requested")
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()
