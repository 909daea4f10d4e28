from __future__ import annotations

import time
from typing import Callable, Iterable

STEP_MS = 12
MAX_STARS = 3

Clock = Callable[[], float]


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class InputGate:
    """Busy window that drops input while a slide animation is in flight.

    The window is ``steps * step_ms`` long and clears itself; nothing queues.
    """

    def __init__(self, clock: Clock | None = None, step_ms: float = STEP_MS) -> None:
        if step_ms < 0:
            raise ValueError("step_ms must be >= 0")
        self.clock = clock or monotonic_ms
        self.step_ms = step_ms
        self._busy_until = 0.0

    def is_busy(self) -> bool:
        return self.clock() < self._busy_until

    def hold(self, steps: int) -> float:
        duration = max(0, steps) * self.step_ms
        self._busy_until = self.clock() + duration
        return duration

    def release(self) -> None:
        self._busy_until = 0.0

    @property
    def remaining_ms(self) -> float:
        return max(0.0, self._busy_until - self.clock())


class SessionTimer:
    """Play-time stopwatch: starts on the first accepted move, stops on finish."""

    def __init__(self, clock: Clock | None = None) -> None:
        self.clock = clock or monotonic_ms
        self.started_at: float | None = None
        self.stopped_at: float | None = None

    def start(self) -> None:
        if self.started_at is None:
            self.started_at = self.clock()

    def stop(self) -> None:
        if self.started_at is not None and self.stopped_at is None:
            self.stopped_at = self.clock()

    def resume(self) -> None:
        self.stopped_at = None

    def clear(self) -> None:
        self.started_at = None
        self.stopped_at = None

    @property
    def running(self) -> bool:
        return self.started_at is not None and self.stopped_at is None

    @property
    def elapsed_ms(self) -> float:
        if self.started_at is None:
            return 0.0
        end = self.stopped_at if self.stopped_at is not None else self.clock()
        return end - self.started_at


def normalize_star_thresholds(values: Iterable[float]) -> tuple[int, ...]:
    """Positive thresholds, fastest first; at most three are kept."""
    return tuple(sorted(int(value) for value in values if value > 0))[:MAX_STARS]


def stars_for_time(elapsed_ms: float, thresholds: Iterable[float]) -> int:
    """Fastest threshold earns 3 stars, the next 2, the slowest 1; slower earns 0."""
    ordered = normalize_star_thresholds(thresholds)
    for rank, limit in enumerate(ordered):
        if elapsed_ms <= limit:
            return MAX_STARS - rank
    return 0


def format_elapsed(elapsed_ms: float) -> str:
    """``SS:CS`` clock face (seconds wrap at one minute)."""
    total_ms = max(0, int(elapsed_ms))
    seconds = (total_ms // 1000) % 60
    centiseconds = (total_ms % 1000) // 10
    return f"{seconds:02d}:{centiseconds:02d}"
