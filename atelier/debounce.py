"""
Cancelable debounce timer.

A Debouncer delays a callback until calls stop arriving for `delay_ms`.
Each call supersedes the pending one (latest value wins) and close()
guarantees nothing fires afterwards.

The timer itself comes from a scheduler: any callable
``schedule(delay_seconds, fn) -> handle`` whose handle has ``cancel()``.
threading.Timer and asyncio's loop.call_later both fit, and tests can pass
a manual clock.
"""
import asyncio
import threading
from typing import Any, Callable, Generic, Optional, Protocol, TypeVar

from atelier.observability import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class TimerHandle(Protocol):
    def cancel(self) -> Any: ...


Scheduler = Callable[[float, Callable[[], None]], TimerHandle]


def thread_scheduler(delay: float, fn: Callable[[], None]) -> TimerHandle:
    """Run fn on a daemon timer thread after `delay` seconds."""
    timer = threading.Timer(delay, fn)
    timer.daemon = True
    timer.start()
    return timer


def asyncio_scheduler(loop: Optional[asyncio.AbstractEventLoop] = None) -> Scheduler:
    """Scheduler backed by an event loop's call_later."""
    def schedule(delay: float, fn: Callable[[], None]) -> TimerHandle:
        return (loop or asyncio.get_running_loop()).call_later(delay, fn)
    return schedule


class Debouncer(Generic[T]):
    """
    Delay `callback(value)` until calls settle.

    Usage:
        debouncer = Debouncer(400, write_search)
        debouncer.call("a")
        debouncer.call("ab")   # supersedes "a"
        ...                    # 400 ms later: write_search("ab")
        debouncer.close()      # on teardown
    """

    def __init__(
        self,
        delay_ms: int,
        callback: Callable[[T], None],
        scheduler: Scheduler = thread_scheduler,
    ):
        self.delay_ms = delay_ms
        self._callback = callback
        self._scheduler = scheduler
        self._lock = threading.Lock()
        self._handle: Optional[TimerHandle] = None
        self._value: Optional[T] = None
        self._generation = 0
        self._closed = False

    @property
    def pending(self) -> bool:
        """True while a call is armed and has not fired."""
        return self._handle is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def call(self, value: T) -> None:
        """Arm the timer with `value`, replacing any pending value."""
        with self._lock:
            if self._closed:
                return
            if self._handle is not None:
                self._handle.cancel()
            self._generation += 1
            generation = self._generation
            self._value = value
            self._handle = self._scheduler(
                self.delay_ms / 1000, lambda: self._fire(generation)
            )

    def _fire(self, generation: int) -> None:
        with self._lock:
            # A superseded or canceled timer may still run if it raced cancel()
            if self._closed or generation != self._generation or self._handle is None:
                return
            value = self._value
            self._handle = None
        self._callback(value)

    def flush(self) -> None:
        """Fire the pending call now, if any."""
        with self._lock:
            if self._handle is None or self._closed:
                return
            self._handle.cancel()
            self._handle = None
            value = self._value
        self._callback(value)

    def cancel(self) -> None:
        """Drop the pending call without firing it."""
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
                self._handle = None
            self._generation += 1

    def close(self) -> None:
        """Cancel and refuse further calls."""
        self.cancel()
        self._closed = True
        logger.debug("Debouncer closed")
