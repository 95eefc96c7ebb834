"""
Department registry: the shared per-department queue counters.

``current_queue`` is touched by every journey that passes through a
department, so it is never written with a read-modify-write in Python.
Increments and decrements are single ``UPDATE`` statements built from
``F()`` expressions, and the queue-position snapshot is read under a row
lock so two journeys entering the same department at once get distinct
positions on databases that support ``SELECT ... FOR UPDATE``.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from django.db import transaction
from django.db.models import Count, F, Q

from journeys.models import Department, Journey
from journeys.services.state_machine import ACTIVE_STATUSES

logger = logging.getLogger(__name__)


def lock_department(department_id: str) -> Department:
    return Department.objects.select_for_update().get(id=department_id)


def claim_queue_slot(department_id: str) -> tuple[int, int]:
    """Put one more patient in the department queue.

    Returns ``(queue_position, estimated_wait_minutes)`` computed from the
    queue length before the increment.  Must run inside a transaction.
    """
    department = lock_department(department_id)
    position = department.current_queue + 1
    wait = department.current_queue * department.avg_service_time
    Department.objects.filter(id=department_id).update(current_queue=F('current_queue') + 1)
    logger.debug('department %s queue %s -> %s', department_id, department.current_queue, position)
    return position, wait


def release_queue_slot(department_id: str) -> bool:
    """Take one patient out of the department queue, never below zero.

    Returns False when the counter was already at zero.
    """
    updated = Department.objects.filter(id=department_id, current_queue__gt=0).update(
        current_queue=F('current_queue') - 1
    )
    if not updated:
        logger.warning('department %s queue already at 0, release ignored', department_id)
    return bool(updated)


def recount_queues(hospital_id: Optional[str] = None) -> list[dict]:
    """Rebuild ``current_queue`` from the checkpoints actually waiting or in service.

    Counters can drift when rows are edited by hand or a release is lost;
    this puts them back in line with the active checkpoints of active and
    paused journeys.
    Returns the departments whose counter changed.
    """
    departments = Department.objects.all()
    if hospital_id:
        departments = departments.filter(hospital_id=hospital_id)
    departments = departments.annotate(
        live=Count(
            'checkpoints',
            filter=Q(
                checkpoints__status__in=ACTIVE_STATUSES,
                checkpoints__journey__status__in=Journey.QUEUE_HOLDING_STATUSES,
            ),
        )
    )
    changed: list[dict] = []
    with transaction.atomic():
        for dept in departments:
            if dept.current_queue != dept.live:
                changed.append({'id': dept.id, 'name': dept.name, 'from': dept.current_queue, 'to': dept.live})
                Department.objects.filter(id=dept.id).update(current_queue=dept.live)
    for row in changed:
        logger.info('recount department %s (%s): %s -> %s', row['id'], row['name'], row['from'], row['to'])
    return changed


def format_department(d: Department) -> dict:
    return {
        'id': d.id,
        'name': d.name,
        'code': d.code,
        'type': d.type,
        'floor': d.floor,
        'wing': d.wing,
        'avgServiceTime': d.avg_service_time,
        'currentQueue': d.current_queue,
        'maxCapacity': d.max_capacity,
        'isOpen': d.is_open,
    }


def departments_for_hospital(hospital_id: str, department_ids: Iterable[str]) -> dict[str, Department]:
    ids = set(department_ids)
    return {d.id: d for d in Department.objects.filter(hospital_id=hospital_id, id__in=ids)}
