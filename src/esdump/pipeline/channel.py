from __future__ import annotations

import threading
from collections import deque
from typing import Deque, Generic, Optional, TypeVar

from ..errors import ChannelClosedError, TransferCancelled
from ..metrics.registry import CHANNEL_DEPTH

T = TypeVar("T")


class DispatchChannel(Generic[T]):
    """Bounded, closable hand-off between one producer and N consumers.

    `put` blocks while the channel is full; that is the only backpressure
    between extraction and write-back. The producer closes the channel once;
    consumers see the end of the stream as `get()` returning None after the
    buffer has drained.
    """

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError("capacity must be > 0")

        self._capacity = capacity
        self._items: Deque[T] = deque()
        self._closed = False
        self._cancelled = False

        self._lock = threading.Lock()
        self._not_full = threading.Condition(self._lock)
        self._not_empty = threading.Condition(self._lock)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._items)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def put(self, item: T) -> None:
        """Enqueue, waiting for room. Raises on a closed or cancelled channel."""
        with self._not_full:
            while len(self._items) >= self._capacity and not (self._cancelled or self._closed):
                self._not_full.wait()
            if self._cancelled:
                raise TransferCancelled("dispatch channel cancelled")
            if self._closed:
                raise ChannelClosedError("put on closed dispatch channel")
            self._items.append(item)
            CHANNEL_DEPTH.set(len(self._items))
            self._not_empty.notify()

    def get(self, timeout: Optional[float] = None) -> Optional[T]:
        """Dequeue, waiting for an item.

        Returns None once the channel is closed and empty, or cancelled.
        Raises TimeoutError if `timeout` elapses first.
        """
        with self._not_empty:
            while not self._items and not self._closed and not self._cancelled:
                if not self._not_empty.wait(timeout):
                    raise TimeoutError("dispatch channel get timed out")
            if self._cancelled or not self._items:
                return None
            item = self._items.popleft()
            CHANNEL_DEPTH.set(len(self._items))
            self._not_full.notify()
            return item

    def close(self) -> None:
        """Mark end of stream. Buffered items remain available to consumers."""
        with self._lock:
            if self._closed:
                raise ChannelClosedError("dispatch channel already closed")
            self._closed = True
            self._not_empty.notify_all()
            self._not_full.notify_all()

    def cancel(self) -> None:
        """Wake every waiter; pending items are abandoned."""
        with self._lock:
            self._cancelled = True
            self._items.clear()
            CHANNEL_DEPTH.set(0)
            self._not_empty.notify_all()
            self._not_full.notify_all()
