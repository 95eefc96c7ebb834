"""
Checkpoint state machine.

A checkpoint moves ``pending -> in_queue -> in_progress -> completed``;
``in_queue`` may also go straight to ``completed`` when service is
recorded at the desk, and any non-terminal state may be ``skipped`` by an
administrator.  ``completed`` and ``skipped`` are terminal.

Timestamps are set the first time their state is reached and never
cleared or moved backwards, so resubmitting a transition is harmless.
"""
from __future__ import annotations

import math
from datetime import datetime
from typing import Optional

import bleach

from journeys.exceptions import InvalidStatus, InvalidTransition
from journeys.models import CheckpointStatus

ACTIVE_STATUSES = (CheckpointStatus.IN_QUEUE, CheckpointStatus.IN_PROGRESS)
TERMINAL_STATUSES = (CheckpointStatus.COMPLETED, CheckpointStatus.SKIPPED)

TRANSITIONS: dict[str, frozenset[str]] = {
    CheckpointStatus.PENDING: frozenset({CheckpointStatus.IN_QUEUE, CheckpointStatus.SKIPPED}),
    CheckpointStatus.IN_QUEUE: frozenset({
        CheckpointStatus.IN_PROGRESS, CheckpointStatus.COMPLETED, CheckpointStatus.SKIPPED,
    }),
    CheckpointStatus.IN_PROGRESS: frozenset({CheckpointStatus.COMPLETED, CheckpointStatus.SKIPPED}),
    CheckpointStatus.COMPLETED: frozenset(),
    CheckpointStatus.SKIPPED: frozenset(),
}


def parse_status(value) -> CheckpointStatus:
    try:
        return CheckpointStatus(value)
    except ValueError:
        raise InvalidStatus(f'Invalid status: {value!r}') from None


def can_transition(current: str, new: str) -> bool:
    """Return True if a checkpoint may move from ``current`` to ``new``."""
    return new in TRANSITIONS.get(current, frozenset())


def minutes_between(later: datetime, earlier: datetime) -> int:
    """Whole minutes between two instants, rounded half up, never negative."""
    seconds = (later - earlier).total_seconds()
    return max(0, math.floor(seconds / 60 + 0.5))


def clean_notes(notes: Optional[str]) -> str:
    return bleach.clean((notes or '').strip(), strip=True)


def apply_transition(checkpoint, new_status, *, now: datetime, notes: Optional[str] = None,
                     actual_service_minutes: Optional[int] = None) -> list[str]:
    """Move ``checkpoint`` to ``new_status`` in memory.

    Returns the names of the fields that changed so the caller can save
    exactly those.  Re-entering the current status only updates notes.
    Raises ``InvalidStatus`` for unknown values and ``InvalidTransition``
    for moves the table does not allow.
    """
    new = parse_status(new_status)
    current = checkpoint.status
    if new != current and not can_transition(current, new):
        raise InvalidTransition(f'Cannot move checkpoint from {current} to {new.value}')

    changed: list[str] = []
    cleaned = clean_notes(notes)
    if cleaned and cleaned != checkpoint.notes:
        checkpoint.notes = cleaned
        changed.append('notes')

    if new == current:
        return changed

    checkpoint.status = new.value
    changed.append('status')

    if new == CheckpointStatus.IN_QUEUE and checkpoint.arrived_at is None:
        checkpoint.arrived_at = now
        changed.append('arrived_at')

    if new == CheckpointStatus.IN_PROGRESS and checkpoint.started_at is None:
        checkpoint.started_at = max(now, checkpoint.arrived_at) if checkpoint.arrived_at else now
        changed.append('started_at')
        if checkpoint.arrived_at is not None:
            checkpoint.actual_wait_minutes = minutes_between(checkpoint.started_at, checkpoint.arrived_at)
            changed.append('actual_wait_minutes')

    if new == CheckpointStatus.COMPLETED and checkpoint.completed_at is None:
        earliest = checkpoint.started_at or checkpoint.arrived_at
        checkpoint.completed_at = max(now, earliest) if earliest else now
        changed.append('completed_at')
        if checkpoint.started_at is not None:
            if actual_service_minutes is not None:
                checkpoint.actual_service_minutes = actual_service_minutes
            else:
                checkpoint.actual_service_minutes = minutes_between(checkpoint.completed_at, checkpoint.started_at)
            changed.append('actual_service_minutes')

    return changed
