"""Bounded poll-until-terminal primitive and the async job protocol.

One implementation serves both workflow shapes:
  - job-handle polling (metadata deploy): submit, then fetch status by id;
  - natural-key polling (environment provisioning): re-query a record.

Each iteration sleeps one fixed interval, fetches, and checks the terminal
predicate. The loop stops at the first terminal value, when the attempt
bound is reached, or when the deadline has elapsed at an iteration
boundary (an in-flight fetch is never interrupted). Exceptions raised by
``fetch`` abort the loop and propagate unchanged.

Intervals are fixed, not exponential: the workflows served here are
interactive and human-scale.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')

TIMEOUT_MESSAGE = 'Timeout while waiting for result'


@dataclass(frozen=True, slots=True)
class PollPolicy:
    """Cadence and bounds for one polling loop. At least one bound is required."""

    interval_seconds: float
    max_attempts: int | None = None
    timeout_seconds: float | None = None

    def __post_init__(self) -> None:
        if self.interval_seconds < 0:
            raise ValueError('interval_seconds must be >= 0')
        if self.max_attempts is None and self.timeout_seconds is None:
            raise ValueError('PollPolicy needs max_attempts or timeout_seconds')
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError('max_attempts must be >= 1')
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ValueError('timeout_seconds must be > 0')


@dataclass(frozen=True, slots=True)
class PollOutcome(Generic[T]):
    value: T | None
    attempts: int
    timed_out: bool
    elapsed_seconds: float


class Poller:
    """Runs a fetch function until its result is terminal or bounds run out.

    ``sleep`` and ``clock`` are injectable so tests can drive the loop
    without real waits.
    """

    def __init__(
        self,
        policy: PollPolicy,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.policy = policy
        self._sleep = sleep
        self._clock = clock

    def poll(
        self,
        fetch: Callable[[], T],
        is_terminal: Callable[[T], bool],
        *,
        on_pending: Callable[[T, int], None] | None = None,
    ) -> PollOutcome[T]:
        policy = self.policy
        start = self._clock()
        attempts = 0

        while True:
            self._sleep(policy.interval_seconds)
            value = fetch()
            attempts += 1
            elapsed = self._clock() - start

            if is_terminal(value):
                return PollOutcome(value, attempts, False, elapsed)

            if policy.max_attempts is not None and attempts >= policy.max_attempts:
                return PollOutcome(value, attempts, True, elapsed)
            if policy.timeout_seconds is not None and elapsed >= policy.timeout_seconds:
                return PollOutcome(value, attempts, True, elapsed)

            if on_pending is not None:
                on_pending(value, attempts)


# ── Async job protocol ───────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class JobStatus:
    """Status of a server-side asynchronous job.

    Only a ``done`` status is authoritative; ``success`` and the error
    fields of a pending status carry no meaning. ``timed_out`` is set only
    on the status synthesized for a job that never finished, together with
    the number of checks made and the time spent waiting.
    """

    id: str
    done: bool
    success: bool = False
    status: str = ''
    error_code: str | None = None
    error_message: str | None = None
    details: Any = None
    timed_out: bool = False
    attempts: int = 0
    elapsed_seconds: float = 0.0

    def as_timed_out(self, *, attempts: int, elapsed_seconds: float) -> JobStatus:
        """Terminal failure standing in for a job that never finished."""
        return replace(
            self,
            done=True,
            success=False,
            error_message=TIMEOUT_MESSAGE,
            timed_out=True,
            attempts=attempts,
            elapsed_seconds=elapsed_seconds,
        )


def run_job(
    submit: Callable[[], JobStatus],
    fetch_status: Callable[[str], JobStatus],
    poller: Poller,
) -> JobStatus:
    """Submit once, then poll by job id until done or the poller gives up.

    Never returns a pending status: exhaustion yields a synthesized
    ``success=False, timed_out=True`` status with :data:`TIMEOUT_MESSAGE`,
    so callers can tell a job that ran out of time from one the remote
    side failed.
    """
    initial = submit()
    if initial.done:
        return initial

    job_id = initial.id
    logger.info('Submitted job %s, polling for completion', job_id, extra={'job_id': job_id})

    outcome = poller.poll(
        lambda: fetch_status(job_id),
        lambda status: status.done,
        on_pending=lambda status, n: logger.debug(
            'Job %s still %s after %d checks', job_id, status.status or 'pending', n,
        ),
    )
    last = outcome.value if outcome.value is not None else initial
    if outcome.timed_out:
        logger.warning(
            'Job %s did not finish after %d checks (%.1fs)',
            job_id,
            outcome.attempts,
            outcome.elapsed_seconds,
            extra={'job_id': job_id},
        )
        return last.as_timed_out(attempts=outcome.attempts, elapsed_seconds=outcome.elapsed_seconds)
    return last
