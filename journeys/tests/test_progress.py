from types import SimpleNamespace

from journeys.services import progress


def cp(id, status, wait=None, service=10):
    return SimpleNamespace(
        id=id, status=status, estimated_wait_minutes=wait,
        department=SimpleNamespace(avg_service_time=service),
    )


def test_empty_journey_has_zero_progress_and_no_current():
    assert progress.progress_percent([]) == 0
    assert progress.current_checkpoint([]) is None
    assert progress.estimated_remaining_minutes([]) == 0


def test_progress_counts_completed_and_skipped():
    cps = [cp('a', 'completed'), cp('b', 'skipped'), cp('c', 'pending')]
    assert progress.progress_percent(cps) == 67
    cps = [cp('a', 'completed'), cp('b', 'in_queue'), cp('c', 'pending')]
    assert progress.progress_percent(cps) == 33


def test_progress_rounds_half_up():
    cps = [cp('a', 'completed')] + [cp(str(i), 'pending') for i in range(7)]
    # 12.5% -> 13
    assert progress.progress_percent(cps) == 13


def test_current_prefers_active_over_pending():
    cps = [cp('a', 'pending'), cp('b', 'in_progress'), cp('c', 'pending')]
    assert progress.current_checkpoint(cps).id == 'b'
    cps = [cp('a', 'skipped'), cp('b', 'pending'), cp('c', 'pending')]
    assert progress.current_checkpoint(cps).id == 'b'
    cps = [cp('a', 'completed'), cp('b', 'skipped')]
    assert progress.current_checkpoint(cps) is None


def test_remaining_minutes_sums_from_current_onward():
    cps = [
        cp('a', 'completed', wait=5, service=10),
        cp('b', 'in_queue', wait=20, service=20),
        cp('c', 'pending', service=10),
        cp('d', 'completed', service=99),
    ]
    assert progress.estimated_remaining_minutes(cps) == 20 + 20 + 10


def test_remaining_minutes_falls_back_to_default_service_time():
    cps = [cp('a', 'in_queue', wait=0, service=None), cp('b', 'pending', service=0)]
    assert progress.estimated_remaining_minutes(cps) == 30
    assert progress.estimated_remaining_minutes(cps, default_service_minutes=5) == 10


def test_summarize():
    cps = [cp('a', 'completed'), cp('b', 'skipped'), cp('c', 'in_queue', wait=10, service=10)]
    summary = progress.summarize(cps)
    assert summary == {
        'progressPercent': 67,
        'completedCheckpoints': 1,
        'resolvedCheckpoints': 2,
        'totalCheckpoints': 3,
        'currentCheckpointId': 'c',
        'estimatedRemainingMinutes': 20,
    }
