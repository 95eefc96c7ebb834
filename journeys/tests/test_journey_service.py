import re
from datetime import timedelta

import pytest
from django.utils import timezone

from journeys.exceptions import (
    CheckpointNotFound,
    HospitalNotFound,
    InvalidStatus,
    InvalidTransition,
    JourneyNotFound,
    UnknownDepartment,
)
from journeys.models import AuditEvent, Checkpoint, CheckpointTransition, Department, Hospital, Journey
from journeys.services import departments as department_service
from journeys.services.journeys import (
    format_journey,
    get_journey,
    start_journey,
    transition_checkpoint,
    update_journey_status,
)

pytestmark = pytest.mark.django_db


def queues(depts):
    return [Department.objects.get(id=d.id).current_queue for d in depts]


def checkpoints_of(journey):
    return list(Checkpoint.objects.filter(journey=journey).order_by('sequence'))


def test_three_checkpoint_scenario(patient, hospital, departments):
    t0 = timezone.now()
    journey = start_journey(patient, hospital.id, department_ids=[d.id for d in departments], now=t0)

    cp1, cp2, cp3 = checkpoints_of(journey)
    assert (cp1.status, cp1.queue_position, cp1.estimated_wait_minutes) == ('in_queue', 1, 0)
    assert cp1.arrived_at == t0
    assert cp2.status == cp3.status == 'pending'
    assert journey.estimated_total_minutes == 40
    assert journey.current_checkpoint_id == cp1.id
    assert queues(departments) == [1, 0, 0]

    _, journey = transition_checkpoint(journey.id, cp1.id, 'completed', now=t0 + timedelta(minutes=10))
    cp1, cp2, cp3 = checkpoints_of(journey)
    assert cp1.status == 'completed'
    assert (cp2.status, cp2.queue_position, cp2.estimated_wait_minutes) == ('in_queue', 1, 0)
    assert journey.progress_percent == 33
    assert journey.current_checkpoint_id == cp2.id
    assert queues(departments) == [0, 1, 0]

    _, journey = transition_checkpoint(journey.id, cp2.id, 'completed', now=t0 + timedelta(minutes=30))
    cp3 = checkpoints_of(journey)[2]
    assert cp3.status == 'in_queue'
    assert journey.progress_percent == 67
    assert queues(departments) == [0, 0, 1]

    _, journey = transition_checkpoint(journey.id, cp3.id, 'completed', now=t0 + timedelta(minutes=40))
    journey.refresh_from_db()
    assert journey.status == Journey.STATUS_COMPLETED
    assert journey.progress_percent == 100
    assert journey.completed_at == t0 + timedelta(minutes=40)
    assert journey.actual_total_minutes == 40
    assert journey.current_checkpoint_id is None
    assert queues(departments) == [0, 0, 0]


def test_second_patient_queues_behind_first(patient, hospital, departments):
    from journeys.models import PatientProfile, User

    other = PatientProfile.objects.create(
        user=User.objects.create_user(username='patient2', password='x', role='patient'), full_name='Ravi',
    )
    start_journey(patient, hospital.id, department_ids=[departments[0].id])
    second = start_journey(other, hospital.id, department_ids=[departments[0].id])
    cp = checkpoints_of(second)[0]
    assert cp.queue_position == 2
    assert cp.estimated_wait_minutes == 10
    assert queues(departments) == [2, 0, 0]


def test_service_timings_are_recorded(patient, hospital, departments):
    t0 = timezone.now()
    journey = start_journey(patient, hospital.id, department_ids=[departments[0].id], now=t0)
    cp = checkpoints_of(journey)[0]
    transition_checkpoint(journey.id, cp.id, 'in_progress', now=t0 + timedelta(minutes=5))
    cp, _ = transition_checkpoint(journey.id, cp.id, 'completed', now=t0 + timedelta(minutes=12))
    assert cp.actual_wait_minutes == 5
    assert cp.actual_service_minutes == 7
    assert cp.arrived_at <= cp.started_at <= cp.completed_at


def test_skipping_pending_checkpoint_cascades(patient, hospital, departments):
    journey = start_journey(patient, hospital.id, department_ids=[d.id for d in departments])
    cp1, cp2, cp3 = checkpoints_of(journey)

    _, journey = transition_checkpoint(journey.id, cp2.id, 'skipped')
    cp1, cp2, cp3 = checkpoints_of(journey)
    assert cp2.status == 'skipped'
    assert cp3.status == 'in_queue'
    assert journey.progress_percent == 33
    # Nothing was held at the skipped department, so nothing is released.
    assert queues(departments) == [1, 0, 1]
    # The earlier checkpoint is still being served.
    assert journey.current_checkpoint_id == cp1.id

    # Completing the first one steps over the skipped checkpoint without double booking.
    transition_checkpoint(journey.id, cp1.id, 'completed')
    assert queues(departments) == [0, 0, 1]
    assert [c.status for c in checkpoints_of(journey)] == ['completed', 'skipped', 'in_queue']


def test_skipping_last_active_checkpoint_completes_journey(patient, hospital, departments):
    journey = start_journey(patient, hospital.id, department_ids=[departments[0].id])
    cp = checkpoints_of(journey)[0]
    _, journey = transition_checkpoint(journey.id, cp.id, 'skipped')
    assert journey.status == Journey.STATUS_COMPLETED
    assert journey.progress_percent == 100
    assert queues(departments) == [0, 0, 0]


def test_completing_non_last_leaves_exactly_one_active_successor(patient, hospital, departments):
    journey = start_journey(patient, hospital.id, department_ids=[d.id for d in departments])
    cp1 = checkpoints_of(journey)[0]
    transition_checkpoint(journey.id, cp1.id, 'completed')
    successors = checkpoints_of(journey)[1:]
    assert sum(1 for c in successors if c.status in ('in_queue', 'in_progress')) == 1


def test_resubmitting_completion_is_a_no_op(patient, hospital, departments):
    t0 = timezone.now()
    journey = start_journey(patient, hospital.id, department_ids=[d.id for d in departments], now=t0)
    cp1 = checkpoints_of(journey)[0]
    transition_checkpoint(journey.id, cp1.id, 'completed', now=t0 + timedelta(minutes=5))
    before = queues(departments)
    transitions = CheckpointTransition.objects.count()

    cp1_again, journey = transition_checkpoint(journey.id, cp1.id, 'completed', now=t0 + timedelta(minutes=50))
    assert cp1_again.completed_at == t0 + timedelta(minutes=5)
    assert queues(departments) == before
    assert CheckpointTransition.objects.count() == transitions
    assert [c.status for c in checkpoints_of(journey)] == ['completed', 'in_queue', 'pending']


def test_queue_counter_never_goes_negative(patient, hospital, departments):
    journey = start_journey(patient, hospital.id, department_ids=[departments[0].id])
    cp = checkpoints_of(journey)[0]
    # Counter drifted to zero behind the engine's back.
    Department.objects.filter(id=departments[0].id).update(current_queue=0)
    transition_checkpoint(journey.id, cp.id, 'completed')
    assert queues(departments)[0] == 0
    assert department_service.release_queue_slot(departments[0].id) is False
    assert queues(departments)[0] == 0


def test_manual_enqueue_claims_a_slot(patient, hospital, departments):
    journey = start_journey(patient, hospital.id, department_ids=[d.id for d in departments])
    cp3 = checkpoints_of(journey)[2]
    cp3, _ = transition_checkpoint(journey.id, cp3.id, 'in_queue')
    assert cp3.queue_position == 1
    assert queues(departments) == [1, 0, 1]


def test_invalid_status_and_transition_errors(patient, hospital, departments):
    journey = start_journey(patient, hospital.id, department_ids=[d.id for d in departments])
    cp1, cp2, _ = checkpoints_of(journey)
    with pytest.raises(InvalidStatus):
        transition_checkpoint(journey.id, cp1.id, 'finished')
    with pytest.raises(InvalidTransition):
        transition_checkpoint(journey.id, cp2.id, 'completed')
    with pytest.raises(CheckpointNotFound):
        transition_checkpoint(journey.id, 'missing', 'completed')
    with pytest.raises(JourneyNotFound):
        transition_checkpoint('missing', cp1.id, 'completed')


def test_checkpoint_of_another_journey_is_not_found(patient, hospital, departments):
    first = start_journey(patient, hospital.id, department_ids=[departments[0].id])
    second = start_journey(patient, hospital.id, department_ids=[departments[1].id])
    foreign = checkpoints_of(second)[0]
    with pytest.raises(CheckpointNotFound):
        transition_checkpoint(first.id, foreign.id, 'completed')


def test_token_numbers_follow_daily_sequence(patient, hospital, departments):
    first = start_journey(patient, hospital.id, department_ids=[departments[0].id])
    second = start_journey(patient, hospital.id, department_ids=[departments[0].id])
    day = timezone.localtime(first.created_at).strftime('%Y%m%d')
    assert first.token_number == f'GH01-{day}-0001'
    assert second.token_number == f'GH01-{day}-0002'
    assert re.fullmatch(r'GH01-\d{8}-\d{4}', second.token_number)


def test_token_sequence_is_per_hospital(patient, hospital, departments):
    other = Hospital.objects.create(name='City Clinic', code='CC02')
    start_journey(patient, hospital.id)
    journey = start_journey(patient, other.id)
    assert journey.token_number.startswith('CC02-')
    assert journey.token_number.endswith('-0001')


def test_zero_checkpoint_journey(patient, hospital):
    journey = start_journey(patient, hospital.id, department_ids=[])
    assert journey.progress_percent == 0
    assert journey.current_checkpoint_id is None
    assert journey.estimated_total_minutes == 0
    data = format_journey(get_journey(journey.id), detail=True)
    assert data['progressPercent'] == 0
    assert data['totalCheckpoints'] == 0
    assert data['estimatedRemainingMinutes'] == 0
    assert data['currentCheckpoint'] is None


def test_start_journey_rejects_unknown_hospital_and_departments(patient, hospital, departments):
    with pytest.raises(HospitalNotFound):
        start_journey(patient, 'nope', department_ids=[departments[0].id])
    other = Hospital.objects.create(name='Elsewhere', code='EW01')
    foreign = Department.objects.create(hospital=other, name='Lab')
    with pytest.raises(UnknownDepartment):
        start_journey(patient, hospital.id, department_ids=[departments[0].id, foreign.id])
    assert Journey.objects.count() == 0
    assert queues(departments) == [0, 0, 0]


def test_duplicate_departments_are_visited_twice(patient, hospital, departments):
    reg, cons, _ = departments
    journey = start_journey(patient, hospital.id, department_ids=[reg.id, cons.id, reg.id])
    assert [c.department_id for c in checkpoints_of(journey)] == [reg.id, cons.id, reg.id]
    assert journey.estimated_total_minutes == 40


def test_journey_start_is_audited(patient, hospital, departments):
    journey = start_journey(patient, hospital.id, department_ids=[departments[0].id], user=patient.user)
    event = AuditEvent.objects.get(action='journey_start')
    assert event.object_id == journey.id
    assert event.user == patient.user
    assert CheckpointTransition.objects.filter(to_status='in_queue', reason='journey start').count() == 1


def test_update_journey_status(patient, hospital, departments):
    journey = start_journey(patient, hospital.id, department_ids=[departments[0].id])
    with pytest.raises(InvalidStatus):
        update_journey_status(journey.id, 'finished')
    journey = update_journey_status(journey.id, 'paused')
    assert journey.status == 'paused'
    # Pausing keeps the place in the queue.
    assert queues(departments) == [1, 0, 0]

    cp = checkpoints_of(journey)[0]
    transition_checkpoint(journey.id, cp.id, 'completed')
    journey.refresh_from_db()
    stamped = journey.completed_at
    assert journey.status == 'completed' and stamped is not None
    journey = update_journey_status(journey.id, 'active')
    journey = update_journey_status(journey.id, 'completed')
    assert journey.completed_at == stamped
    assert journey.progress_percent == 100


def test_completing_with_open_checkpoints_is_rejected(patient, hospital, departments):
    journey = start_journey(patient, hospital.id, department_ids=[d.id for d in departments])
    with pytest.raises(InvalidTransition):
        update_journey_status(journey.id, 'completed')
    journey.refresh_from_db()
    assert journey.status == 'active'
    assert journey.completed_at is None
    assert [c.status for c in checkpoints_of(journey)] == ['in_queue', 'pending', 'pending']
    assert queues(departments) == [1, 0, 0]


def test_completing_resolved_journey_sets_totals(patient, hospital, departments):
    t0 = timezone.now()
    journey = start_journey(patient, hospital.id, department_ids=[], now=t0)
    journey = update_journey_status(journey.id, 'completed', now=t0 + timedelta(minutes=25))
    journey.refresh_from_db()
    assert journey.status == 'completed'
    assert journey.progress_percent == 100
    assert journey.completed_at == t0 + timedelta(minutes=25)
    assert journey.actual_total_minutes == 25
    assert journey.current_checkpoint_id is None


def test_cancelling_releases_department_slots(patient, hospital, departments):
    journey = start_journey(patient, hospital.id, department_ids=[d.id for d in departments])
    cp1, cp2, _ = checkpoints_of(journey)
    transition_checkpoint(journey.id, cp1.id, 'completed')
    transition_checkpoint(journey.id, cp2.id, 'in_progress')
    assert queues(departments) == [0, 1, 0]

    update_journey_status(journey.id, 'cancelled')
    assert queues(departments) == [0, 0, 0]
    # Cancelling twice does not release again.
    update_journey_status(journey.id, 'cancelled')
    assert queues(departments) == [0, 0, 0]


def test_reopening_cancelled_journey_claims_slots_again(patient, hospital, departments):
    journey = start_journey(patient, hospital.id, department_ids=[d.id for d in departments])
    update_journey_status(journey.id, 'cancelled')
    Department.objects.filter(id=departments[0].id).update(current_queue=2)

    update_journey_status(journey.id, 'active')
    cp1 = checkpoints_of(journey)[0]
    assert (cp1.status, cp1.queue_position, cp1.estimated_wait_minutes) == ('in_queue', 3, 20)
    assert queues(departments) == [3, 0, 0]


def test_cancelled_journey_rejects_checkpoint_changes(patient, hospital, departments):
    journey = start_journey(patient, hospital.id, department_ids=[d.id for d in departments])
    cp1 = checkpoints_of(journey)[0]
    update_journey_status(journey.id, 'cancelled')
    with pytest.raises(InvalidTransition):
        transition_checkpoint(journey.id, cp1.id, 'completed')


def test_detail_format_carries_polling_contract(patient, hospital, departments, settings):
    settings.JOURNEY_POLL_INTERVAL_SECONDS = 45
    journey = start_journey(patient, hospital.id, department_ids=[d.id for d in departments])
    data = format_journey(get_journey(journey.id), detail=True)
    assert data['pollIntervalSeconds'] == 45
    assert data['generatedAt']
    assert data['currentCheckpoint']['status'] == 'in_queue'
    assert data['estimatedRemainingMinutes'] == 0 + 10 + 20 + 10
    assert [c['sequence'] for c in data['checkpoints']] == [1, 2, 3]
