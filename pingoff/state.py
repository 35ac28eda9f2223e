"""
Failure-streak state machine for the watched address.
States: HEALTHY, FAILING, TERMINATED.
Transitions: HEALTHY -> FAILING on first failure; FAILING -> HEALTHY on first success;
FAILING -> TERMINATED once the streak lasts `timeout` seconds.
Progress lines are anchored to the streak start: one at every multiple of
`log_every`, plus a final one when the timeout is crossed.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class State(Enum):
    HEALTHY = "healthy"
    FAILING = "failing"
    TERMINATED = "terminated"


@dataclass
class FailureVerdict:
    """What one failed probe means for the current streak."""
    started: bool  # first failure of a new streak
    elapsed: int  # whole seconds since the streak started
    log_progress: bool
    timed_out: bool


class MonitorState:
    """Owned by one Monitor. All mutations from the monitor loop only (single writer)."""

    def __init__(self, timeout: int, log_every: int) -> None:
        self.timeout = timeout
        self.log_every = log_every
        self.failure_streak_start: Optional[float] = None
        self.reported_milestones = 0
        self.terminated = False

    @property
    def state(self) -> State:
        if self.terminated:
            return State.TERMINATED
        if self.failure_streak_start is None:
            return State.HEALTHY
        return State.FAILING

    def elapsed(self, now: float) -> int:
        """Whole seconds the current streak has lasted; 0 when healthy."""
        if self.failure_streak_start is None:
            return 0
        return int(now - self.failure_streak_start)

    def _check_alive(self) -> None:
        if self.terminated:
            raise RuntimeError("monitor state is terminated")

    def record_success(self, now: float) -> tuple[State, int]:
        """
        Record a successful probe. Returns (previous_state, streak_elapsed);
        streak_elapsed is how long the outage lasted, 0 if there was none.
        """
        self._check_alive()
        prev = self.state
        elapsed = self.elapsed(now)
        self.failure_streak_start = None
        self.reported_milestones = 0
        return prev, elapsed

    def record_failure(self, now: float) -> FailureVerdict:
        """Record a failed probe (unreachable or timed out)."""
        self._check_alive()
        if self.failure_streak_start is None:
            self.failure_streak_start = now
            self.reported_milestones = 0
            return FailureVerdict(started=True, elapsed=0, log_progress=False, timed_out=False)

        elapsed = self.elapsed(now)
        timed_out = elapsed >= self.timeout
        log_progress = timed_out or elapsed >= (self.reported_milestones + 1) * self.log_every
        if log_progress:
            self.reported_milestones += 1
        return FailureVerdict(started=False, elapsed=elapsed, log_progress=log_progress, timed_out=timed_out)

    def mark_terminated(self) -> None:
        """One-shot: after this no further probe outcome is accepted."""
        self._check_alive()
        self.terminated = True
