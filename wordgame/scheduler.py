"""Timers for a session: (delay, action) pairs cancellable as a unit."""

import heapq
import itertools
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Iterable, List, Tuple

logger = logging.getLogger(__name__)

Action = Callable[[], None]


class Scheduler(ABC):
    """Runs actions after a delay. ``cancel_all`` drops everything still pending."""

    @abstractmethod
    def schedule(self, delay: float, action: Action) -> None:
        ...

    @abstractmethod
    def cancel_all(self) -> None:
        ...

    @abstractmethod
    def time(self) -> float:
        ...

    def schedule_all(self, steps: Iterable[Tuple[float, Action]]) -> None:
        for delay, action in steps:
            self.schedule(delay, action)


class ThreadScheduler(Scheduler):
    """Real-time scheduler backed by one ``threading.Timer`` per action."""

    def __init__(self):
        self._timers: List[threading.Timer] = []
        self._lock = threading.Lock()

    def schedule(self, delay: float, action: Action) -> None:
        timer = threading.Timer(max(0.0, delay), self._run, args=(action,))
        timer.daemon = True
        with self._lock:
            self._timers = [t for t in self._timers if t.is_alive()]
            self._timers.append(timer)
        timer.start()

    def _run(self, action: Action) -> None:
        try:
            action()
        except Exception:
            logger.exception("Scheduled action failed")

    def cancel_all(self) -> None:
        with self._lock:
            timers, self._timers = self._timers, []
        for timer in timers:
            timer.cancel()
        if timers:
            logger.debug(f"Cancelled {len(timers)} timer(s)")

    def time(self) -> float:
        return time.time()


class ManualScheduler(Scheduler):
    """Virtual-clock scheduler. Nothing runs until ``advance`` is called."""

    def __init__(self, start: float = 1000.0):
        self._now = start
        self._queue: List[Tuple[float, int, Action]] = []
        self._counter = itertools.count()

    def schedule(self, delay: float, action: Action) -> None:
        heapq.heappush(self._queue, (self._now + max(0.0, delay), next(self._counter), action))

    def cancel_all(self) -> None:
        self._queue.clear()

    def time(self) -> float:
        return self._now

    @property
    def pending(self) -> int:
        return len(self._queue)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, running every action that falls due in order."""
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target:
            due, _, action = heapq.heappop(self._queue)
            self._now = max(self._now, due)
            action()
        self._now = target
