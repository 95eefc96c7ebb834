"""
Journey unit of work.

Every operation that changes a journey runs in a single
``transaction.atomic()`` block: the checkpoint update, both department
counter moves, the activation of the next checkpoint and the progress
recompute are applied together or not at all.  Per-journey work is
serialized by locking the journey row; department counters have their
own row locks in :mod:`journeys.services.departments`.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional

from django.conf import settings
from django.db import DatabaseError, transaction
from django.db.models import Prefetch
from django.utils import timezone

from journeys.exceptions import (
    CheckpointNotFound,
    HospitalNotFound,
    InvalidInput,
    InvalidStatus,
    InvalidTransition,
    JourneyNotFound,
    NotFound,
    PersistenceFailure,
    UnknownDepartment,
)
from journeys.models import Checkpoint, CheckpointTransition, Hospital, Journey, PatientProfile
from journeys.permissions import is_staff_user
from journeys.services import progress
from journeys.services.audit import log_action
from journeys.services.cascade import enter_queue, run_cascade, take_queue_slot
from journeys.services.departments import departments_for_hospital, format_department, release_queue_slot
from journeys.services.state_machine import (
    ACTIVE_STATUSES,
    CheckpointStatus,
    TERMINAL_STATUSES,
    apply_transition,
    clean_notes,
    minutes_between,
    parse_status,
)

logger = logging.getLogger(__name__)

JOURNEY_START_REASON = 'journey start'


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _with_checkpoints(qs):
    return qs.select_related('hospital', 'patient').prefetch_related(
        Prefetch('checkpoints', queryset=Checkpoint.objects.select_related('department').order_by('sequence'))
    )


def generate_token_number(hospital: Hospital, now: datetime) -> str:
    """``{code}-{YYYYMMDD}-{NNNN}`` with a per-hospital daily sequence.

    The sequence counts journeys created for the hospital since local
    midnight.  Callers hold the hospital row lock.
    """
    local = timezone.localtime(now)
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    issued = Journey.objects.filter(hospital=hospital, created_at__gte=midnight).count()
    return f"{hospital.code}-{local:%Y%m%d}-{issued + 1:04d}"


def start_journey(patient: PatientProfile, hospital_id, *, visit_type: Optional[str] = None,
                  department_ids: Iterable[str] = (), chief_complaint: Optional[str] = None,
                  user=None, now: Optional[datetime] = None) -> Journey:
    """Create a journey with one checkpoint per department, in the order given.

    The first checkpoint goes straight into its department queue; the rest
    wait as pending.  An empty department list gives a journey with no
    checkpoints and zero progress.
    """
    if not hospital_id:
        raise InvalidInput('hospitalId is required')
    now = now or timezone.now()
    department_ids = [str(d) for d in (department_ids or ())]

    try:
        with transaction.atomic():
            # Serializes token generation per hospital.
            hospital = Hospital.objects.select_for_update().filter(id=hospital_id).first()
            if hospital is None:
                raise HospitalNotFound()
            known = departments_for_hospital(hospital.id, department_ids)
            missing = [d for d in department_ids if d not in known]
            if missing:
                raise UnknownDepartment(f"Unknown department for this hospital: {', '.join(missing)}")

            journey = Journey.objects.create(
                patient=patient,
                hospital=hospital,
                token_number=generate_token_number(hospital, now),
                visit_type=visit_type or 'opd',
                chief_complaint=clean_notes(chief_complaint) or None,
                estimated_total_minutes=sum(known[d].avg_service_time for d in department_ids),
                started_at=now,
                created_at=now,
            )
            checkpoints = [
                Checkpoint.objects.create(journey=journey, department=known[dept_id], sequence=index)
                for index, dept_id in enumerate(department_ids, start=1)
            ]
            if checkpoints:
                enter_queue(checkpoints[0], now=now, operator=user, reason=JOURNEY_START_REASON)
                journey.current_checkpoint = checkpoints[0]
                journey.save(update_fields=['current_checkpoint', 'updated_at'])

            log_action(
                user=user, action='journey_start', object_type='journey', object_id=journey.id,
                detail={'tokenNumber': journey.token_number, 'hospitalId': hospital.id, 'departments': department_ids},
            )
    except DatabaseError as exc:
        logger.exception('failed to start journey at hospital %s', hospital_id)
        raise PersistenceFailure() from exc

    logger.info(
        'journey %s started: token %s, %s checkpoint(s), estimated %s min',
        journey.id, journey.token_number, len(department_ids), journey.estimated_total_minutes,
    )
    return journey


def transition_checkpoint(journey_id, checkpoint_id, status, *, notes: Optional[str] = None,
                          actual_service_minutes: Optional[int] = None, operator=None,
                          now: Optional[datetime] = None) -> tuple[Checkpoint, Journey]:
    """Move one checkpoint to ``status`` and cascade the rest of the journey.

    Resubmitting the status a checkpoint already has changes nothing except
    the notes, when new ones are given.
    """
    new_status = parse_status(status)
    now = now or timezone.now()

    try:
        with transaction.atomic():
            journey = Journey.objects.select_for_update().filter(id=journey_id).first()
            if journey is None:
                raise JourneyNotFound()
            checkpoints = list(
                Checkpoint.objects.select_related('department').filter(journey=journey).order_by('sequence')
            )
            target = next((c for c in checkpoints if c.id == checkpoint_id), None)
            if target is None:
                raise CheckpointNotFound()
            if journey.status == Journey.STATUS_CANCELLED and target.status != new_status:
                raise InvalidTransition('Journey is cancelled')

            previous = target.status
            changed = apply_transition(
                target, new_status, now=now, notes=notes, actual_service_minutes=actual_service_minutes,
            )
            if 'status' not in changed:
                if changed:
                    target.save(update_fields=changed + ['updated_at'])
                logger.debug('checkpoint %s already %s, nothing to do', target.id, previous)
                return target, journey

            if new_status == CheckpointStatus.IN_QUEUE:
                changed += take_queue_slot(target)
            target.save(update_fields=changed + ['updated_at'])
            CheckpointTransition.objects.create(
                checkpoint=target,
                from_status=previous,
                to_status=target.status,
                operator=operator,
                timestamp=now,
                reason=target.notes[:255] if 'notes' in changed else '',
            )

            if new_status in TERMINAL_STATUSES:
                run_cascade(journey, target, checkpoints, previous_status=previous, now=now)
            else:
                journey.current_checkpoint = progress.current_checkpoint(checkpoints)
                journey.progress_percent = progress.progress_percent(checkpoints)
                journey.save(update_fields=['current_checkpoint', 'progress_percent', 'updated_at'])

            log_action(
                user=operator, action='checkpoint_update', object_type='checkpoint', object_id=target.id,
                detail={'journeyId': journey.id, 'from': previous, 'to': target.status},
            )
    except DatabaseError as exc:
        logger.exception('failed to update checkpoint %s of journey %s', checkpoint_id, journey_id)
        raise PersistenceFailure() from exc

    logger.info(
        'journey %s checkpoint #%s: %s -> %s (progress %s%%)',
        journey.id, target.sequence, previous, target.status, journey.progress_percent,
    )
    return target, journey


def update_journey_status(journey_id, status, *, user=None, now: Optional[datetime] = None) -> Journey:
    """Move a journey to another lifecycle status.

    Completing needs every checkpoint completed or skipped.  Cancelling
    gives back the department slots of checkpoints still waiting or in
    service, and reopening a cancelled journey takes them again.
    """
    if status not in dict(Journey.STATUS_CHOICES):
        raise InvalidStatus(f'Invalid journey status: {status!r}')
    now = now or timezone.now()
    try:
        with transaction.atomic():
            journey = Journey.objects.select_for_update().filter(id=journey_id).first()
            if journey is None:
                raise JourneyNotFound()
            previous = journey.status
            if previous == status:
                return journey
            checkpoints = list(
                Checkpoint.objects.select_related('department').filter(journey=journey).order_by('sequence')
            )
            held = [c for c in checkpoints if c.status in ACTIVE_STATUSES]
            journey.status = status
            fields = ['status', 'updated_at']
            if status == Journey.STATUS_COMPLETED:
                unfinished = [c.sequence for c in checkpoints if c.status not in TERMINAL_STATUSES]
                if unfinished:
                    raise InvalidTransition(
                        f'Journey has unfinished checkpoints: {", ".join(map(str, unfinished))}'
                    )
                if journey.completed_at is None:
                    journey.completed_at = now
                if journey.actual_total_minutes is None and journey.started_at:
                    journey.actual_total_minutes = minutes_between(journey.completed_at, journey.started_at)
                journey.progress_percent = 100
                journey.current_checkpoint = None
                fields += ['completed_at', 'actual_total_minutes', 'progress_percent', 'current_checkpoint']
            elif status == Journey.STATUS_CANCELLED:
                for c in held:
                    release_queue_slot(c.department_id)
            elif previous == Journey.STATUS_CANCELLED:
                for c in held:
                    c.save(update_fields=take_queue_slot(c) + ['updated_at'])
            journey.save(update_fields=fields)
            log_action(
                user=user, action='journey_status', object_type='journey', object_id=journey.id,
                detail={'from': previous, 'to': status, 'slots': len(held)},
            )
    except DatabaseError as exc:
        logger.exception('failed to update status of journey %s', journey_id)
        raise PersistenceFailure() from exc
    logger.info('journey %s status %s -> %s', journey.id, previous, status)
    return journey


def is_journey_owner(user, journey: Journey) -> bool:
    return bool(user and user.is_authenticated and journey.patient.user_id == user.id)


def can_manage_journey(user, journey: Journey) -> bool:
    return is_journey_owner(user, journey) or is_staff_user(user)


def get_journey(journey_id) -> Journey:
    journey = _with_checkpoints(Journey.objects.filter(id=journey_id)).first()
    if journey is None:
        raise JourneyNotFound()
    return journey


def list_patient_journeys(patient: PatientProfile, status: Optional[str] = None, limit: Optional[int] = None):
    qs = Journey.objects.filter(patient=patient)
    if status:
        qs = qs.filter(status=status)
    limit = limit or settings.JOURNEY_LIST_LIMIT
    return list(_with_checkpoints(qs).order_by('-created_at')[:limit])


def list_hospital_journeys(hospital_id, status: Optional[str] = Journey.STATUS_ACTIVE):
    """Journeys of one hospital, newest first.  ``status='all'`` disables the filter."""
    if not Hospital.objects.filter(id=hospital_id).exists():
        raise NotFound('Hospital not found')
    qs = Journey.objects.filter(hospital_id=hospital_id)
    if status and status != 'all':
        if status not in dict(Journey.STATUS_CHOICES):
            raise InvalidStatus(f'Invalid journey status: {status!r}')
        qs = qs.filter(status=status)
    return list(_with_checkpoints(qs).order_by('-created_at'))


def format_checkpoint(c: Checkpoint) -> dict:
    return {
        'id': c.id,
        'sequence': c.sequence,
        'status': c.status,
        'departmentId': c.department_id,
        'department': format_department(c.department),
        'queuePosition': c.queue_position,
        'estimatedWaitMinutes': c.estimated_wait_minutes,
        'actualWaitMinutes': c.actual_wait_minutes,
        'actualServiceMinutes': c.actual_service_minutes,
        'arrivedAt': _iso(c.arrived_at),
        'startedAt': _iso(c.started_at),
        'completedAt': _iso(c.completed_at),
        'notes': c.notes,
    }


def format_journey(journey: Journey, *, detail: bool = False) -> dict:
    """Response dictionary for a journey loaded with its checkpoints.

    The detail form recomputes progress from the checkpoints and carries
    the polling contract: clients refetch every ``pollIntervalSeconds`` and
    the data is as fresh as ``generatedAt``.
    """
    checkpoints = list(journey.checkpoints.all())
    current = progress.current_checkpoint(checkpoints)
    data = {
        'id': journey.id,
        'tokenNumber': journey.token_number,
        'hospitalId': journey.hospital_id,
        'hospitalName': journey.hospital.name,
        'patientId': journey.patient_id,
        'patientName': journey.patient.full_name,
        'visitType': journey.visit_type,
        'chiefComplaint': journey.chief_complaint,
        'status': journey.status,
        'progressPercent': journey.progress_percent,
        'estimatedTotalMinutes': journey.estimated_total_minutes,
        'actualTotalMinutes': journey.actual_total_minutes,
        'currentCheckpointId': current.id if current is not None else None,
        'currentCheckpoint': format_checkpoint(current) if current is not None else None,
        'startedAt': _iso(journey.started_at),
        'completedAt': _iso(journey.completed_at),
        'createdAt': _iso(journey.created_at),
    }
    if detail:
        data.update(progress.summarize(checkpoints, settings.JOURNEY_DEFAULT_SERVICE_MINUTES))
        data['checkpoints'] = [format_checkpoint(c) for c in checkpoints]
        data['pollIntervalSeconds'] = settings.JOURNEY_POLL_INTERVAL_SECONDS
        data['generatedAt'] = timezone.now().isoformat()
    return data
