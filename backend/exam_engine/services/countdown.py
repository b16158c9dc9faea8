"""
Countdown clock of an exam attempt.

The controller knows nothing about wall-clock time: it is advanced by
``tick()``, once per second while a session runs (see
``ExamSession.run_clock``). Each call returns the events crossed by that tick
so the caller decides how to surface them.
"""
import enum
import logging
from typing import List, Optional

logger = logging.getLogger(__name__)

CRITICAL_SECONDS = 60
WARNING_FRACTION = 0.1


class CountdownState(str, enum.Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    WARNED_TIME = "warned_time"
    WARNED_CRITICAL = "warned_critical"
    EXPIRED = "expired"
    STOPPED = "stopped"


class CountdownEvent(str, enum.Enum):
    TIME_WARNING = "time_warning"
    CRITICAL_WARNING = "critical_warning"
    EXPIRED = "expired"


_TICKING = (CountdownState.RUNNING, CountdownState.WARNED_TIME, CountdownState.WARNED_CRITICAL)


class CountdownController:
    """
    Remaining-time state for one attempt.

    ``total_seconds=None`` makes an untimed clock: it starts and stops but
    never counts down nor expires.
    """

    def __init__(self, total_seconds: Optional[int]):
        if total_seconds is not None and total_seconds <= 0:
            raise ValueError("total_seconds must be positive or None")
        self.total_seconds = total_seconds
        self.remaining_seconds = total_seconds
        self.state = CountdownState.NOT_STARTED
        self._warned_time = False
        self._warned_critical = False
        self._expired = False

    @classmethod
    def from_minutes(cls, minutes: Optional[int]) -> "CountdownController":
        return cls(minutes * 60 if minutes else None)

    @property
    def is_timed(self) -> bool:
        return self.total_seconds is not None

    @property
    def is_running(self) -> bool:
        return self.state in _TICKING

    @property
    def warning_threshold(self) -> Optional[float]:
        if self.total_seconds is None:
            return None
        return self.total_seconds * WARNING_FRACTION

    def start(self) -> List[CountdownEvent]:
        if self.state is not CountdownState.NOT_STARTED:
            return []
        self.state = CountdownState.RUNNING
        return self._check_thresholds()

    def tick(self, seconds: int = 1) -> List[CountdownEvent]:
        """Advance the clock. Ticks outside a running state are ignored."""
        if not self.is_running or not self.is_timed:
            return []
        self.remaining_seconds = max(0, self.remaining_seconds - seconds)
        return self._check_thresholds()

    def stop(self) -> None:
        if self.state is not CountdownState.EXPIRED:
            self.state = CountdownState.STOPPED

    def _check_thresholds(self) -> List[CountdownEvent]:
        if not self.is_timed:
            return []
        events: List[CountdownEvent] = []
        remaining = self.remaining_seconds
        if (
            not self._warned_time
            and remaining <= self.warning_threshold
            and remaining > CRITICAL_SECONDS
        ):
            self._warned_time = True
            self.state = CountdownState.WARNED_TIME
            events.append(CountdownEvent.TIME_WARNING)
        if not self._warned_critical and remaining <= CRITICAL_SECONDS:
            self._warned_critical = True
            self.state = CountdownState.WARNED_CRITICAL
            events.append(CountdownEvent.CRITICAL_WARNING)
        if not self._expired and remaining == 0:
            self._expired = True
            self.state = CountdownState.EXPIRED
            events.append(CountdownEvent.EXPIRED)
            logger.info("Countdown reached zero")
        return events


def format_remaining(seconds: Optional[int]) -> Optional[str]:
    """'1h 2m 3s' or '2m 3s'."""
    if seconds is None:
        return None
    hours, rest = divmod(max(0, int(seconds)), 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    return f"{minutes}m {secs}s"
