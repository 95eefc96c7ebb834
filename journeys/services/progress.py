"""
Journey progress aggregation.

Pure functions over a journey's checkpoints, ordered by sequence.  They
read ``status``, ``estimated_wait_minutes`` and
``department.avg_service_time`` and never touch the database, so the same
numbers come out whether they run on freshly loaded rows or on objects
that the cascade has just modified in memory.
"""
from __future__ import annotations

import math
from typing import Optional, Sequence

from journeys.services.state_machine import ACTIVE_STATUSES, CheckpointStatus, TERMINAL_STATUSES

DEFAULT_SERVICE_MINUTES = 15


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def resolved_count(checkpoints: Sequence) -> int:
    return sum(1 for c in checkpoints if c.status in TERMINAL_STATUSES)


def progress_percent(checkpoints: Sequence) -> int:
    """Share of completed or skipped checkpoints, 0..100.  An empty journey is at 0."""
    total = len(checkpoints)
    if not total:
        return 0
    return round_half_up(100 * resolved_count(checkpoints) / total)


def current_checkpoint(checkpoints: Sequence):
    """First checkpoint waiting or in service, else the first pending one, else None."""
    for c in checkpoints:
        if c.status in ACTIVE_STATUSES:
            return c
    for c in checkpoints:
        if c.status == CheckpointStatus.PENDING:
            return c
    return None


def estimated_remaining_minutes(checkpoints: Sequence, default_service_minutes: int = DEFAULT_SERVICE_MINUTES) -> int:
    current = current_checkpoint(checkpoints)
    if current is None:
        return 0
    total = 0
    found = False
    for c in checkpoints:
        if c is current:
            found = True
        if found and c.status != CheckpointStatus.COMPLETED:
            service = getattr(c.department, 'avg_service_time', None) or default_service_minutes
            total += (c.estimated_wait_minutes or 0) + service
    return total


def summarize(checkpoints: Sequence, default_service_minutes: Optional[int] = None) -> dict:
    current = current_checkpoint(checkpoints)
    return {
        'progressPercent': progress_percent(checkpoints),
        'completedCheckpoints': sum(1 for c in checkpoints if c.status == CheckpointStatus.COMPLETED),
        'resolvedCheckpoints': resolved_count(checkpoints),
        'totalCheckpoints': len(checkpoints),
        'currentCheckpointId': current.id if current is not None else None,
        'estimatedRemainingMinutes': estimated_remaining_minutes(
            checkpoints, default_service_minutes or DEFAULT_SERVICE_MINUTES
        ),
    }
