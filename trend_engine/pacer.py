from __future__ import annotations
import random
import threading
import time
from typing import Callable


class Pacer:
    """Spaces out calls to an external source.

    ``wait()`` is called right before every outbound request.
    """

    def wait(self) -> None:
        raise NotImplementedError


class FixedIntervalPacer(Pacer):
    """Guarantees at least ``interval`` seconds (plus jitter) between two calls."""

    def __init__(
        self,
        interval: float,
        jitter: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.interval = interval
        self.jitter = jitter
        self._sleep = sleep
        self._monotonic = monotonic
        self._last: float | None = None
        self._lock = threading.Lock()

    def wait(self) -> None:
        with self._lock:
            if self._last is not None:
                target = self.interval + (random.uniform(0.0, self.jitter) if self.jitter > 0 else 0.0)
                remaining = target - (self._monotonic() - self._last)
                if remaining > 0:
                    self._sleep(remaining)
            self._last = self._monotonic()


class NullPacer(Pacer):
    def wait(self) -> None:
        return None
