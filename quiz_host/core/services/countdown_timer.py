"""Per-question countdown driven by a repeating one-second tick."""

from __future__ import annotations

from threading import Event, Thread
from typing import Callable, Protocol

from quiz_host.constants.quiz_constants import TIMER_TICK_INTERVAL_SECONDS


class TickHandle(Protocol):
    def cancel(self) -> None: ...


class Ticker(Protocol):
    def schedule(self, interval: float, callback: Callable[[], None]) -> TickHandle: ...


class _ThreadTickHandle:
    def __init__(self, interval: float, callback: Callable[[], None]) -> None:
        self._interval = interval
        self._callback = callback
        self._cancelled = Event()
        self._thread = Thread(target=self._run, name="QuizCountdown", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def cancel(self) -> None:
        # Never joins: cancel may be called from the tick thread itself.
        self._cancelled.set()

    def _run(self) -> None:
        while not self._cancelled.wait(self._interval):
            self._callback()


class ThreadTicker:
    """Runs each scheduled callback on its own daemon thread until cancelled."""

    def schedule(self, interval: float, callback: Callable[[], None]) -> TickHandle:
        handle = _ThreadTickHandle(interval, callback)
        handle.start()
        return handle


class CountdownTimer:
    """Cancellable countdown whose ticks are tagged with a generation number.

    Every ``start`` and ``stop`` bumps the generation, so a tick that was
    already scheduled (or already running) when the timer was stopped or
    restarted is recognised as stale and ignored by ``tick``.

    The timer does no locking of its own; ``on_tick`` is expected to take the
    owner's lock and then call ``tick`` with the generation it was given.
    """

    def __init__(
        self,
        on_tick: Callable[[int], None],
        ticker: Ticker | None = None,
        interval: float = TIMER_TICK_INTERVAL_SECONDS,
    ) -> None:
        self._on_tick = on_tick
        self._ticker = ticker or ThreadTicker()
        self._interval = interval
        self._generation = 0
        self._remaining = 0
        self._handle: TickHandle | None = None

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def generation(self) -> int:
        return self._generation

    def is_running(self) -> bool:
        return self._handle is not None

    def start(self, seconds: int) -> None:
        """Begin a fresh countdown from ``seconds``; any previous countdown is dropped."""
        self.stop()
        self._remaining = seconds
        generation = self._generation
        self._handle = self._ticker.schedule(self._interval, lambda: self._on_tick(generation))

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._generation += 1

    def reset(self) -> None:
        self.stop()
        self._remaining = 0

    def tick(self, generation: int) -> bool:
        """Apply one tick. Returns True when this tick ran the countdown out."""
        if self._handle is None or generation != self._generation:
            return False
        self._remaining = max(0, self._remaining - 1)
        if self._remaining == 0:
            self.stop()
            return True
        return False
