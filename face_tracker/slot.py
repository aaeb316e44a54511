from __future__ import annotations

import threading
from typing import Generic, Optional, TypeVar, Union

T = TypeVar("T")

# Returned by `take` when nothing was handed over. `None` is a legal item.
EMPTY = object()


class LatestFrameSlot(Generic[T]):
    """
    Single-item hand-off between a producer and one consumer thread.

    `put` never blocks: a pending item that has not been taken yet is
    replaced by the new one (and counted in `dropped`). `take` blocks until
    an item is available or the slot is closed.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._item: Optional[T] = None
        self._has_item = False
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    @property
    def pending(self) -> bool:
        with self._cond:
            return self._has_item

    def put(self, item: T) -> bool:
        """Offer `item`; returns False once the slot is closed."""
        with self._cond:
            if self._closed:
                return False
            if self._has_item:
                self.dropped += 1
            self._item = item
            self._has_item = True
            self._cond.notify()
            return True

    def take(self, timeout: Optional[float] = None) -> Union[T, object]:
        """
        Next item, or `EMPTY` when the slot is closed and drained (or on timeout).
        """
        with self._cond:
            self._cond.wait_for(lambda: self._has_item or self._closed, timeout=timeout)
            if not self._has_item:
                return EMPTY
            item = self._item
            self._item = None
            self._has_item = False
            return item

    def close(self, *, discard_pending: bool = True) -> None:
        with self._cond:
            self._closed = True
            if discard_pending and self._has_item:
                self._item = None
                self._has_item = False
                self.dropped += 1
            self._cond.notify_all()
