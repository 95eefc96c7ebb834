from io import StringIO

import pytest
from django.core.management import call_command

from journeys.models import Department, Hospital
from journeys.services.departments import (
    claim_queue_slot,
    format_department,
    recount_queues,
    release_queue_slot,
)
from journeys.services.journeys import start_journey, update_journey_status

pytestmark = pytest.mark.django_db


def test_claim_snapshots_before_increment(departments):
    consult = departments[1]
    Department.objects.filter(id=consult.id).update(current_queue=3)
    position, wait = claim_queue_slot(consult.id)
    assert (position, wait) == (4, 60)
    consult.refresh_from_db()
    assert consult.current_queue == 4


def test_release_is_floored_at_zero(departments):
    reg = departments[0]
    claim_queue_slot(reg.id)
    assert release_queue_slot(reg.id) is True
    assert release_queue_slot(reg.id) is False
    reg.refresh_from_db()
    assert reg.current_queue == 0


def test_recount_repairs_drifted_counter(patient, hospital, departments):
    journey = start_journey(patient, hospital.id, department_ids=[departments[0].id])
    start_journey(patient, hospital.id, department_ids=[departments[0].id])
    update_journey_status(journey.id, 'cancelled')
    assert Department.objects.get(id=departments[0].id).current_queue == 1
    Department.objects.filter(id=departments[0].id).update(current_queue=4)

    changed = recount_queues(hospital.id)
    assert changed == [{'id': departments[0].id, 'name': 'Registration', 'from': 4, 'to': 1}]
    assert Department.objects.get(id=departments[0].id).current_queue == 1
    assert recount_queues(hospital.id) == []


def test_recount_counts_paused_journeys(patient, hospital, departments):
    journey = start_journey(patient, hospital.id, department_ids=[departments[0].id])
    update_journey_status(journey.id, 'paused')
    assert recount_queues(hospital.id) == []
    assert Department.objects.get(id=departments[0].id).current_queue == 1


def test_recount_limited_to_one_hospital(hospital, departments):
    other = Hospital.objects.create(name='City Clinic', code='CC02')
    lab = Department.objects.create(hospital=other, name='Lab', current_queue=4)
    Department.objects.filter(id=departments[0].id).update(current_queue=2)
    changed = recount_queues(other.id)
    assert [row['id'] for row in changed] == [lab.id]
    assert Department.objects.get(id=departments[0].id).current_queue == 2


def test_recount_command(hospital, departments):
    Department.objects.filter(id=departments[2].id).update(current_queue=5)
    out = StringIO()
    call_command('recount_queues', '--hospital', hospital.id, stdout=out)
    assert 'Pharmacy' in out.getvalue()
    assert '1 department(s) changed' in out.getvalue()
    assert Department.objects.get(id=departments[2].id).current_queue == 0


def test_format_department(departments):
    data = format_department(departments[1])
    assert data['name'] == 'Consultation'
    assert data['avgServiceTime'] == 20
    assert data['currentQueue'] == 0
    assert data['maxCapacity'] == 50
    assert data['isOpen'] is True
