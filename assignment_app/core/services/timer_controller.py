"""State machine for time-boxed attempts.

Remaining time is always derived from an absolute deadline and the current
wall-clock time, so delayed or dropped ticks never make the countdown drift.
The deadline is persisted through a :class:`DeadlineStore`; when the store is
unavailable the timer keeps working in memory and only loses resume support.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from enum import Enum
import logging
import math

from assignment_app.constants.assignment_constants import LEAVE_WARNING_MESSAGE
from assignment_app.core.services.deadline_store import DeadlineStore, DeadlineStoreError

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TimerState(Enum):
    NOT_APPLICABLE = "not-applicable"
    NOT_STARTED = "not-started"
    RUNNING = "running"
    EXPIRED = "expired"
    FINALIZED = "finalized"


class TimerController:
    """Tracks the countdown of a single learner's timed attempt."""

    def __init__(
        self,
        time_limit_minutes: int,
        storage_key: str,
        store: DeadlineStore,
        clock: Clock = utc_now,
    ) -> None:
        self._limit_seconds = max(0, int(time_limit_minutes)) * 60
        self._key = storage_key
        self._store = store
        self._clock = clock
        self._deadline: datetime | None = None
        self._remaining_seconds = self._limit_seconds
        self._expiry_signalled = False
        self._persistence_available = True
        self._state = TimerState.NOT_STARTED if self._limit_seconds else TimerState.NOT_APPLICABLE

    @property
    def state(self) -> TimerState:
        return self._state

    @property
    def deadline(self) -> datetime | None:
        return self._deadline

    @property
    def remaining_seconds(self) -> int:
        return self._remaining_seconds

    @property
    def limit_seconds(self) -> int:
        return self._limit_seconds

    @property
    def persistence_available(self) -> bool:
        return self._persistence_available

    @property
    def is_running(self) -> bool:
        return self._state is TimerState.RUNNING

    @property
    def accepts_answers(self) -> bool:
        return self._state in (TimerState.NOT_APPLICABLE, TimerState.NOT_STARTED, TimerState.RUNNING)

    @property
    def leave_warning(self) -> str | None:
        """Advisory prompt to show when the learner tries to navigate away."""
        return LEAVE_WARNING_MESSAGE if self._state is TimerState.RUNNING else None

    @property
    def progress_percent(self) -> float:
        if not self._limit_seconds:
            return 100.0
        return self._remaining_seconds / self._limit_seconds * 100

    def format_remaining(self) -> str:
        minutes, seconds = divmod(self._remaining_seconds, 60)
        return f"{minutes}:{seconds:02d}"

    def resume(self) -> bool:
        """Pick up a persisted deadline, if any.

        Returns True when the resumed deadline has already passed, i.e. the
        attempt expired while nobody was watching and must be auto-submitted.
        """
        if self._state is not TimerState.NOT_STARTED:
            return False
        saved = self._read_deadline()
        if saved is None:
            return False
        self._deadline = saved
        self._state = TimerState.RUNNING
        return self.tick()

    def start(self) -> TimerState:
        """Start the countdown. Calling it again while running is a no-op."""
        if self._state is not TimerState.NOT_STARTED:
            return self._state
        self._deadline = self._clock() + timedelta(seconds=self._remaining_seconds)
        self._state = TimerState.RUNNING
        self._write_deadline(self._deadline)
        return self._state

    def tick(self, now: datetime | None = None) -> bool:
        """Recompute the remaining time.

        Returns True exactly once over the timer's lifetime: on the tick that
        observes the deadline has been reached.
        """
        if self._state is TimerState.RUNNING and self._deadline is not None:
            current = now or self._clock()
            remaining = (self._deadline - current).total_seconds()
            self._remaining_seconds = max(0, math.floor(remaining))
            if self._remaining_seconds == 0:
                self._state = TimerState.EXPIRED
        if self._state is TimerState.EXPIRED and not self._expiry_signalled:
            self._expiry_signalled = True
            return True
        return False

    def finalize(self) -> None:
        """Stop the timer for good and forget the persisted deadline."""
        if self._state is TimerState.NOT_APPLICABLE:
            return
        self._state = TimerState.FINALIZED
        try:
            self._store.clear_deadline(self._key)
        except DeadlineStoreError:
            self._degrade("clear")

    def _read_deadline(self) -> datetime | None:
        try:
            saved = self._store.read_deadline(self._key)
        except DeadlineStoreError:
            self._degrade("read")
            return None
        if saved is not None and saved.tzinfo is None:
            saved = saved.replace(tzinfo=timezone.utc)
        return saved

    def _write_deadline(self, deadline: datetime) -> None:
        try:
            self._store.write_deadline(self._key, deadline)
        except DeadlineStoreError:
            self._degrade("write")

    def _degrade(self, operation: str) -> None:
        self._persistence_available = False
        logger.warning(
            "Deadline store %s failed for %s; continuing with in-memory timing only.",
            operation,
            self._key,
            exc_info=True,
        )
