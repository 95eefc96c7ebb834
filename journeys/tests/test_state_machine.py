from datetime import timedelta
from types import SimpleNamespace

import pytest
from django.utils import timezone

from journeys.exceptions import InvalidStatus, InvalidTransition
from journeys.services.state_machine import (
    CheckpointStatus,
    apply_transition,
    can_transition,
    minutes_between,
    parse_status,
)


def make_checkpoint(status='pending', **kwargs):
    fields = dict(
        status=status, notes='', arrived_at=None, started_at=None, completed_at=None,
        actual_wait_minutes=None, actual_service_minutes=None,
    )
    fields.update(kwargs)
    return SimpleNamespace(**fields)


@pytest.mark.parametrize('current,new,allowed', [
    ('pending', 'in_queue', True),
    ('pending', 'skipped', True),
    ('pending', 'in_progress', False),
    ('pending', 'completed', False),
    ('in_queue', 'in_progress', True),
    ('in_queue', 'completed', True),
    ('in_queue', 'skipped', True),
    ('in_progress', 'completed', True),
    ('in_progress', 'in_queue', False),
    ('completed', 'in_queue', False),
    ('completed', 'skipped', False),
    ('skipped', 'in_queue', False),
])
def test_transition_table(current, new, allowed):
    assert can_transition(current, new) is allowed


def test_parse_status_rejects_unknown_values():
    assert parse_status('in_queue') == CheckpointStatus.IN_QUEUE
    with pytest.raises(InvalidStatus):
        parse_status('done')
    with pytest.raises(InvalidStatus):
        parse_status(None)


def test_minutes_between_rounds_half_up_and_never_negative():
    t0 = timezone.now()
    assert minutes_between(t0 + timedelta(seconds=90), t0) == 2
    assert minutes_between(t0 + timedelta(seconds=89), t0) == 1
    assert minutes_between(t0 - timedelta(minutes=5), t0) == 0


def test_full_lifecycle_sets_timestamps_and_durations():
    t0 = timezone.now()
    cp = make_checkpoint()

    changed = apply_transition(cp, 'in_queue', now=t0)
    assert cp.status == 'in_queue'
    assert cp.arrived_at == t0
    assert set(changed) == {'status', 'arrived_at'}

    apply_transition(cp, 'in_progress', now=t0 + timedelta(minutes=5))
    assert cp.started_at == t0 + timedelta(minutes=5)
    assert cp.actual_wait_minutes == 5

    apply_transition(cp, 'completed', now=t0 + timedelta(minutes=17))
    assert cp.completed_at == t0 + timedelta(minutes=17)
    assert cp.actual_service_minutes == 12


def test_supplied_service_minutes_win_over_measured():
    t0 = timezone.now()
    cp = make_checkpoint('in_progress', arrived_at=t0, started_at=t0)
    apply_transition(cp, 'completed', now=t0 + timedelta(minutes=30), actual_service_minutes=8)
    assert cp.actual_service_minutes == 8


def test_completion_without_start_leaves_service_minutes_empty():
    t0 = timezone.now()
    cp = make_checkpoint('in_queue', arrived_at=t0)
    apply_transition(cp, 'completed', now=t0 + timedelta(minutes=3), actual_service_minutes=8)
    assert cp.completed_at is not None
    assert cp.actual_service_minutes is None


def test_resubmitting_same_status_changes_nothing():
    t0 = timezone.now()
    cp = make_checkpoint('completed', arrived_at=t0, started_at=t0, completed_at=t0 + timedelta(minutes=4),
                         actual_service_minutes=4)
    changed = apply_transition(cp, 'completed', now=t0 + timedelta(hours=1))
    assert changed == []
    assert cp.completed_at == t0 + timedelta(minutes=4)
    assert cp.actual_service_minutes == 4


def test_resubmission_may_still_update_notes():
    cp = make_checkpoint('in_queue', arrived_at=timezone.now())
    changed = apply_transition(cp, 'in_queue', now=timezone.now(), notes='  <span>bring reports</span> ')
    assert changed == ['notes']
    assert cp.notes == 'bring reports'


def test_timestamps_stay_ordered_when_clock_lags():
    t0 = timezone.now()
    cp = make_checkpoint('in_queue', arrived_at=t0)
    apply_transition(cp, 'in_progress', now=t0 - timedelta(minutes=2))
    apply_transition(cp, 'completed', now=t0 - timedelta(minutes=1))
    assert cp.arrived_at <= cp.started_at <= cp.completed_at
    assert cp.actual_wait_minutes == 0


def test_illegal_transition_leaves_checkpoint_untouched():
    cp = make_checkpoint('completed', notes='done')
    with pytest.raises(InvalidTransition):
        apply_transition(cp, 'in_queue', now=timezone.now(), notes='again')
    assert cp.status == 'completed'
    assert cp.notes == 'done'
