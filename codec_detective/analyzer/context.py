"""Cancellable execution context shared by the caller and the parse thread."""
from __future__ import annotations

import itertools
import logging
import threading
from typing import Callable, Dict, Optional

from .errors import CancellationError, DeadlineExceededError

logger = logging.getLogger(__name__)

DoneCallback = Callable[[], None]


class Context:
    """Cancellation signal with parent propagation and done-callbacks.

    A context is cancelled at most once.  Callbacks registered with
    `add_done_callback` run exactly once, on the thread that cancels the
    context (or immediately, when registered on an already-done context).
    """

    def __init__(self, parent: Optional['Context'] = None) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._error: Optional[CancellationError] = None
        self._callbacks: Dict[int, DoneCallback] = {}
        self._ids = itertools.count()
        self._timer: Optional[threading.Timer] = None
        self._detach: Optional[Callable[[], None]] = None
        if parent is not None:
            self._detach = parent.add_done_callback(
                lambda: self._cancel_with(parent.error or CancellationError())
            )

    @classmethod
    def background(cls) -> 'Context':
        return cls()

    def with_cancel(self) -> 'Context':
        return Context(parent=self)

    def with_timeout(self, seconds: float) -> 'Context':
        child = Context(parent=self)
        timer = threading.Timer(
            seconds,
            lambda: child._cancel_with(DeadlineExceededError()),
        )
        timer.daemon = True
        child._timer = timer
        timer.start()
        return child

    @property
    def done(self) -> bool:
        return self._event.is_set()

    @property
    def error(self) -> Optional[CancellationError]:
        return self._error

    def cancel(self, reason: Optional[str] = None) -> None:
        self._cancel_with(CancellationError(reason))

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout)

    def raise_if_done(self) -> None:
        if self._error is not None:
            raise self._error

    def add_done_callback(self, callback: DoneCallback) -> Callable[[], None]:
        """Register `callback`; returns a function that unregisters it."""

        with self._lock:
            if not self._event.is_set():
                key = next(self._ids)
                self._callbacks[key] = callback
                return lambda: self._remove_callback(key)
        callback()
        return lambda: None

    def _remove_callback(self, key: int) -> None:
        with self._lock:
            self._callbacks.pop(key, None)

    def _cancel_with(self, error: CancellationError) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._error = error
            self._event.set()
            callbacks = list(self._callbacks.values())
            self._callbacks.clear()
        if self._timer is not None:
            self._timer.cancel()
        if self._detach is not None:
            self._detach()
            self._detach = None
        logger.debug('Context done: %s', error)
        for callback in callbacks:
            callback()
