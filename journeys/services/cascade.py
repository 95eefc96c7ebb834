"""
Queue cascade: what happens to the rest of a journey when one of its
checkpoints is completed or skipped.

The caller holds the journey row lock and passes the journey's full,
sequence-ordered checkpoint list with the resolved checkpoint already
updated in it.  Everything here runs in the caller's transaction.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from journeys.models import Checkpoint, CheckpointTransition, Journey
from journeys.services import departments, progress
from journeys.services.state_machine import (
    ACTIVE_STATUSES,
    CheckpointStatus,
    TERMINAL_STATUSES,
    apply_transition,
    minutes_between,
)

logger = logging.getLogger(__name__)

AUTO_ADVANCE_REASON = 'auto-advance'


def next_open_checkpoint(checkpoints: Sequence[Checkpoint], after_sequence: int) -> Optional[Checkpoint]:
    """The checkpoint at ``after_sequence + 1``, or the first unresolved one after it.

    Checkpoints an administrator already skipped are stepped over.
    """
    for c in checkpoints:
        if c.sequence > after_sequence and c.status not in TERMINAL_STATUSES:
            return c
    return None


def take_queue_slot(checkpoint: Checkpoint) -> list[str]:
    """Claim a place in the checkpoint's department queue; returns the fields set."""
    position, wait = departments.claim_queue_slot(checkpoint.department_id)
    checkpoint.queue_position = position
    checkpoint.estimated_wait_minutes = wait
    return ['queue_position', 'estimated_wait_minutes']


def enter_queue(checkpoint: Checkpoint, *, now: datetime, operator=None, reason: str = AUTO_ADVANCE_REASON) -> Checkpoint:
    """Move a pending checkpoint into its department queue.

    Takes a queue slot in the department, stamps arrival and records the
    transition.  A checkpoint that is already waiting or in service keeps
    its slot.
    """
    if checkpoint.status in ACTIVE_STATUSES:
        return checkpoint
    previous = checkpoint.status
    changed = apply_transition(checkpoint, CheckpointStatus.IN_QUEUE, now=now)
    changed += take_queue_slot(checkpoint)
    checkpoint.save(update_fields=changed + ['updated_at'])
    CheckpointTransition.objects.create(
        checkpoint=checkpoint,
        from_status=previous,
        to_status=checkpoint.status,
        operator=operator,
        timestamp=now,
        reason=reason,
    )
    logger.info(
        'checkpoint %s (journey %s, #%s) queued at position %s, wait %s min',
        checkpoint.id, checkpoint.journey_id, checkpoint.sequence,
        checkpoint.queue_position, checkpoint.estimated_wait_minutes,
    )
    return checkpoint


def run_cascade(journey: Journey, resolved: Checkpoint, checkpoints: Sequence[Checkpoint], *,
                previous_status: str, now: datetime) -> Optional[Checkpoint]:
    """Advance the journey after ``resolved`` reached completed or skipped.

    Returns the checkpoint that is now current, or None when nothing is
    left to visit.
    """
    # The department slot is only held while waiting or in service.
    if previous_status in ACTIVE_STATUSES:
        departments.release_queue_slot(resolved.department_id)

    update_fields = ['progress_percent', 'current_checkpoint', 'updated_at']
    successor = next_open_checkpoint(checkpoints, resolved.sequence)
    if successor is not None:
        enter_queue(successor, now=now)
    elif all(c.status in TERMINAL_STATUSES for c in checkpoints):
        journey.status = Journey.STATUS_COMPLETED
        journey.completed_at = now
        journey.actual_total_minutes = (
            minutes_between(now, journey.started_at) if journey.started_at else None
        )
        update_fields += ['status', 'completed_at', 'actual_total_minutes']
        logger.info('journey %s (%s) completed', journey.id, journey.token_number)

    # A skip ahead of an unfinished checkpoint leaves the earlier one current.
    journey.current_checkpoint = progress.current_checkpoint(checkpoints)
    journey.progress_percent = progress.progress_percent(checkpoints)
    journey.save(update_fields=update_fields)
    return journey.current_checkpoint
