"""Bounded, closable hand-off between the parse thread and its consumer."""
from __future__ import annotations

import threading
from collections import deque
from typing import Deque, Generic, Iterator, Optional, TypeVar

from .context import Context
from .errors import ChannelClosedError

T = TypeVar('T')

_DEFAULT_POLL_INTERVAL = 0.05


class FrameChannel(Generic[T]):
    """FIFO channel that is written by one producer and closed exactly once.

    A capacity of zero or less behaves like a single-slot buffer.  Readers
    see every item sent before `close()` and then a clean end of iteration.
    """

    def __init__(self, capacity: int = 0) -> None:
        self._capacity = max(1, capacity)
        self._items: Deque[T] = deque()
        self._closed = False
        self._cond = threading.Condition()

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def send(self, item: T, ctx: Context, *, poll_interval: float = _DEFAULT_POLL_INTERVAL) -> bool:
        """Block until `item` is queued; return False if `ctx` is done first."""

        with self._cond:
            while True:
                if self._closed:
                    raise ChannelClosedError('send on closed channel')
                if ctx.done:
                    return False
                if len(self._items) < self._capacity:
                    self._items.append(item)
                    self._cond.notify_all()
                    return True
                self._cond.wait(poll_interval)

    def receive(self, timeout: Optional[float] = None) -> T:
        """Pop the next item; raises `ChannelClosedError` once drained and closed."""

        with self._cond:
            if not self._cond.wait_for(lambda: self._items or self._closed, timeout):
                raise TimeoutError('no frame received before timeout')
            if self._items:
                item = self._items.popleft()
                self._cond.notify_all()
                return item
            raise ChannelClosedError('channel closed')

    def close(self) -> None:
        with self._cond:
            if self._closed:
                raise ChannelClosedError('close of closed channel')
            self._closed = True
            self._cond.notify_all()

    def __iter__(self) -> Iterator[T]:
        while True:
            try:
                yield self.receive()
            except ChannelClosedError:
                return
