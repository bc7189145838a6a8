"""Registration number generation for submitted applications."""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

PREFIX = "APP-"


class RegistrationNumberGenerator:
    """Issue `APP-<epoch millis>` references that never repeat in-process.

    When two submissions land in the same millisecond (or the wall clock
    steps backwards) the previous value plus one is issued instead, so
    the numbers stay strictly increasing for the life of the process.
    Uniqueness across processes is enforced by the database constraint.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or time.time
        self._last = 0
        self._lock = threading.Lock()

    def next_millis(self) -> int:
        now = int(self._clock() * 1000)
        with self._lock:
            if now <= self._last:
                now = self._last + 1
            self._last = now
        return now

    def next(self) -> str:
        return f"{PREFIX}{self.next_millis()}"


registration_numbers = RegistrationNumberGenerator()
