from __future__ import annotations

import threading
from typing import Callable, Optional

from loguru import logger

ProgressListener = Callable[[int], None]


class ProgressCounter:
    """Shared attempt counter, incremented once per write attempt.

    Counts failures as well as successes: it drives throughput/ETA display,
    it is not a success count. Listeners receive the increment (always 1)
    and are called outside the lock.
    """

    def __init__(self, total: Optional[int] = None):
        self._value = 0
        self._lock = threading.Lock()
        self._listeners: list[ProgressListener] = []
        self.total = total

    @property
    def value(self) -> int:
        return self._value

    def subscribe(self, listener: ProgressListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            value = self._value
        for listener in list(self._listeners):
            try:
                listener(1)
            except Exception as exc:
                # a broken progress display must not fail a write
                logger.debug(f"Progress listener error (ignored): {type(exc).__name__}: {exc}")
        return value
