"""
Queue wait prediction from hourly department statistics.

Statistics are logged per hospital, department code, local date and hour.
A prediction for a department looks at the same hour on the same weekday
over the last four weeks; without any such history it falls back to the
live queue length times the department's average service time.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from django.db import DatabaseError, transaction
from django.utils import timezone

from journeys.exceptions import DepartmentNotFound, HospitalNotFound, PersistenceFailure
from journeys.models import Department, Hospital, QueueStatistics
from journeys.services.progress import round_half_up

logger = logging.getLogger(__name__)

HISTORY_DAYS = 28
HISTORY_SAMPLES = 10
RULE_LOW_FACTOR = 0.6
RULE_HIGH_FACTOR = 1.5
RULE_LOW_FLOOR = 5
DEFAULT_SERVICE_MINUTES = 15


def day_of_week(d: date) -> int:
    """Sunday = 0 ... Saturday = 6."""
    return d.isoweekday() % 7


def predict_wait(department_id: str, *, now: Optional[datetime] = None) -> dict:
    department = Department.objects.filter(id=department_id).first()
    if department is None:
        raise DepartmentNotFound()
    local = timezone.localtime(now or timezone.now())
    today = local.date()

    stats = list(
        QueueStatistics.objects.filter(
            hospital_id=department.hospital_id,
            department_code=department.code,
            hour=local.hour,
            day_of_week=day_of_week(today),
            date__gte=today - timedelta(days=HISTORY_DAYS),
        ).order_by('-date')[:HISTORY_SAMPLES]
    )
    if stats:
        predicted = round_half_up(sum(s.avg_wait_time for s in stats) / len(stats))
        low = min(s.min_wait_time for s in stats)
        high = max(s.max_wait_time for s in stats)
        source = 'historical'
    else:
        predicted = (max(0, department.current_queue) + 1) * department.avg_service_time
        low = max(RULE_LOW_FLOOR, round_half_up(predicted * RULE_LOW_FACTOR))
        high = round_half_up(predicted * RULE_HIGH_FACTOR)
        source = 'rule'

    logger.debug('department %s predicted %s min (%s, %s samples)', department.id, predicted, source, len(stats))
    return {
        'departmentId': department.id,
        'predictedMinutes': predicted,
        'confidenceLow': low,
        'confidenceHigh': high,
        'source': source,
    }


def log_stats(hospital_id: str, department_code: str, *, avg_wait_time: float,
              max_wait_time: Optional[int] = None, min_wait_time: Optional[int] = None,
              total_patients: Optional[int] = None, avg_service_time: Optional[int] = None,
              weather_condition: Optional[str] = None, is_holiday: bool = False,
              special_events: Optional[str] = None,
              now: Optional[datetime] = None) -> tuple[QueueStatistics, bool]:
    """Record the current hour's figures for a department, replacing any earlier entry for that hour.

    Missing min/max fall back to the average.  Returns ``(row, created)``.
    """
    if not Hospital.objects.filter(id=hospital_id).exists():
        raise HospitalNotFound()
    local = timezone.localtime(now or timezone.now())
    bucket_avg = round_half_up(avg_wait_time)
    try:
        with transaction.atomic():
            row, created = QueueStatistics.objects.update_or_create(
                hospital_id=hospital_id,
                department_code=department_code,
                date=local.date(),
                hour=local.hour,
                defaults={
                    'day_of_week': day_of_week(local.date()),
                    'avg_wait_time': float(avg_wait_time),
                    'max_wait_time': bucket_avg if max_wait_time is None else max_wait_time,
                    'min_wait_time': bucket_avg if min_wait_time is None else min_wait_time,
                    'total_patients': 1 if total_patients is None else total_patients,
                    'avg_service_time': avg_service_time or DEFAULT_SERVICE_MINUTES,
                    'weather_condition': weather_condition or None,
                    'is_holiday': bool(is_holiday),
                    'special_events': special_events or None,
                },
            )
    except DatabaseError as exc:
        logger.exception('failed to log queue statistics for %s/%s', hospital_id, department_code)
        raise PersistenceFailure() from exc
    logger.info(
        'queue stats %s %s/%s %s %02dh: avg %s min',
        'created' if created else 'updated', hospital_id, department_code, row.date, row.hour, row.avg_wait_time,
    )
    return row, created


def format_stats(row: QueueStatistics) -> dict:
    return {
        'hospitalId': row.hospital_id,
        'departmentCode': row.department_code,
        'date': row.date.isoformat(),
        'hour': row.hour,
        'dayOfWeek': row.day_of_week,
        'avgWaitTime': row.avg_wait_time,
        'maxWaitTime': row.max_wait_time,
        'minWaitTime': row.min_wait_time,
        'totalPatients': row.total_patients,
        'avgServiceTime': row.avg_service_time,
    }
