"""Provisioning state machine.

Implements the canonical environment flow:
  requested -> waiting_active -> authenticating -> applying_settings
  -> setting_credentials -> ready

And deterministic failure transitions:
  requested / waiting_active -> error
  waiting_active -> timed_out
  authenticating / applying_settings / setting_credentials
    -> partially_provisioned

Once the environment is Active nothing is rolled back, so every later
failure ends in ``partially_provisioned`` rather than ``error``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from types import MappingProxyType

from .models import EnvironmentStatus

PROVISIONING_SEQUENCE = (
    'requested',
    'waiting_active',
    'authenticating',
    'applying_settings',
    'setting_credentials',
    'ready',
)

TERMINAL_STATES = frozenset({'ready', 'error', 'timed_out', 'partially_provisioned'})
PRE_ACTIVE_STATES = frozenset({'requested', 'waiting_active'})
POST_ACTIVE_STATES = frozenset({'authenticating', 'applying_settings', 'setting_credentials'})

ALLOWED_TRANSITIONS = MappingProxyType(
    {
        'requested': frozenset({'waiting_active', 'error'}),
        'waiting_active': frozenset({'authenticating', 'error', 'timed_out'}),
        'authenticating': frozenset({'applying_settings', 'partially_provisioned'}),
        'applying_settings': frozenset({'setting_credentials', 'partially_provisioned'}),
        'setting_credentials': frozenset({'ready', 'partially_provisioned'}),
        'ready': frozenset(),
        'error': frozenset(),
        'timed_out': frozenset(),
        'partially_provisioned': frozenset(),
    }
)

ENVIRONMENT_STATUS_TRANSITIONS = MappingProxyType(
    {
        EnvironmentStatus.PROVISIONING: frozenset(
            {EnvironmentStatus.ACTIVE, EnvironmentStatus.ERROR}
        ),
        EnvironmentStatus.ACTIVE: frozenset({EnvironmentStatus.DELETED}),
        EnvironmentStatus.ERROR: frozenset(),
        EnvironmentStatus.DELETED: frozenset(),
    }
)


@dataclass(frozen=True, slots=True)
class ProvisioningState:
    """State snapshot for one environment provisioning run."""

    environment_name: str
    state: str = 'requested'
    state_entered_at: datetime | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None
    last_error_code: str | None = None
    last_error_detail: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES


class InvalidStateTransition(ValueError):
    """Raised for invalid provisioning state transitions."""

    def __init__(self, from_state: str, to_state: str) -> None:
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(f'invalid state transition: {from_state!r} -> {to_state!r}')


def create_requested(*, environment_name: str, now: datetime) -> ProvisioningState:
    _require_aware_datetime(now)
    return ProvisioningState(
        environment_name=environment_name,
        state='requested',
        state_entered_at=now,
        started_at=now,
    )


def advance_state(job: ProvisioningState, *, now: datetime) -> ProvisioningState:
    """Advance provisioning by exactly one step of the happy path."""
    _require_aware_datetime(now)
    if job.state not in PROVISIONING_SEQUENCE or job.state == 'ready':
        raise InvalidStateTransition(job.state, 'next')

    next_state = PROVISIONING_SEQUENCE[PROVISIONING_SEQUENCE.index(job.state) + 1]
    return _transition(job, to_state=next_state, now=now)


def transition_to_error(
    job: ProvisioningState,
    *,
    now: datetime,
    error_code: str,
    error_detail: str,
) -> ProvisioningState:
    """Terminal failure before the environment became Active."""
    _require_aware_datetime(now)
    return _transition(
        job, to_state='error', now=now, error_code=error_code, error_detail=error_detail,
    )


def transition_to_timeout(
    job: ProvisioningState,
    *,
    now: datetime,
    error_detail: str,
) -> ProvisioningState:
    _require_aware_datetime(now)
    return _transition(
        job,
        to_state='timed_out',
        now=now,
        error_code='provisioning_timeout',
        error_detail=error_detail,
    )


def transition_to_partial(
    job: ProvisioningState,
    *,
    now: datetime,
    error_code: str,
    error_detail: str,
) -> ProvisioningState:
    """Failure after the environment became Active."""
    _require_aware_datetime(now)
    return _transition(
        job,
        to_state='partially_provisioned',
        now=now,
        error_code=error_code,
        error_detail=error_detail,
    )


def validate_status_transition(old: EnvironmentStatus, new: EnvironmentStatus) -> None:
    """Check a remote status change against the monotonic lifecycle."""
    if old == new:
        return
    if new not in ENVIRONMENT_STATUS_TRANSITIONS[old]:
        raise InvalidStateTransition(old.value, new.value)


def _transition(
    job: ProvisioningState,
    *,
    to_state: str,
    now: datetime,
    error_code: str | None = None,
    error_detail: str | None = None,
) -> ProvisioningState:
    allowed = ALLOWED_TRANSITIONS.get(job.state, frozenset())
    if to_state not in allowed:
        raise InvalidStateTransition(job.state, to_state)

    return replace(
        job,
        state=to_state,
        state_entered_at=now,
        finished_at=now if to_state in TERMINAL_STATES else None,
        last_error_code=error_code,
        last_error_detail=error_detail,
        started_at=job.started_at or now,
    )


def _require_aware_datetime(value: datetime) -> None:
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        raise ValueError('now must be timezone-aware')
