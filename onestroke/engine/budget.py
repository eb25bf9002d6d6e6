"""Wall-clock budget and cooperative yield token shared by all searches."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional


@dataclass
class SearchBudget:
    """Deadline plus an optional host callback invoked at yield points.

    Searches call :meth:`pause` every ``yield_interval`` steps so a host event
    loop or UI can run, and stop starting new work once :meth:`expired`
    reports True. ``cancel_event`` lets a thread owning the search request an
    early stop; it is only observed at those same points.
    """

    time_limit_ms: float
    yield_interval: int = 2000
    on_yield: Optional[Callable[[], None]] = None
    cancel_event: Optional[threading.Event] = None
    started_at: float = field(default_factory=time.monotonic)

    @property
    def deadline(self) -> float:
        return self.started_at + self.time_limit_ms / 1000.0

    def expired(self) -> bool:
        if self.cancel_event is not None and self.cancel_event.is_set():
            return True
        return time.monotonic() >= self.deadline

    def elapsed_ms(self) -> float:
        return (time.monotonic() - self.started_at) * 1000.0

    def remaining_ms(self) -> float:
        return max(0.0, (self.deadline - time.monotonic()) * 1000.0)

    def pause(self) -> None:
        if self.on_yield is not None:
            self.on_yield()

    def slice(self, time_limit_ms: float) -> "SearchBudget":
        """Child budget capped by this one's remaining time."""

        return SearchBudget(
            time_limit_ms=min(time_limit_ms, self.remaining_ms()),
            yield_interval=self.yield_interval,
            on_yield=self.on_yield,
            cancel_event=self.cancel_event,
        )
