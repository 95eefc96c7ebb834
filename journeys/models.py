"""
Database models for the journey backend.

A patient's hospital visit is a :class:`Journey` made of an ordered list of
:class:`Checkpoint` rows, one per department stop.  Departments keep a live
queue counter that the cascade logic in :mod:`journeys.services` moves up
and down as patients enter and leave them.
"""
from __future__ import annotations

import uuid

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone


def new_id() -> str:
    return uuid.uuid4().hex


class CheckpointStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    IN_QUEUE = 'in_queue', 'In queue'
    IN_PROGRESS = 'in_progress', 'In progress'
    COMPLETED = 'completed', 'Completed'
    SKIPPED = 'skipped', 'Skipped'


class User(AbstractUser):
    """Custom user model with a role.

    Patients own journeys; doctors, staff and admins move checkpoints
    along and may look at any journey.
    """
    ROLE_CHOICES = [
        ('patient', 'Patient'),
        ('doctor', 'Doctor'),
        ('staff', 'Hospital staff'),
        ('admin', 'Administrator'),
    ]
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default='patient')

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class PatientProfile(models.Model):
    """Patient specific information kept apart from the User model."""
    id = models.CharField(max_length=32, primary_key=True, default=new_id, editable=False)
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='patient_profile')
    full_name = models.CharField(max_length=255, blank=True)
    phone = models.CharField(max_length=20, blank=True, db_index=True)

    def __str__(self) -> str:
        return f"{self.full_name or self.user.username} ({self.phone})"


class Hospital(models.Model):
    TYPE_CHOICES = [
        ('government', 'Government'),
        ('private', 'Private'),
        ('trust', 'Trust'),
    ]
    id = models.CharField(max_length=32, primary_key=True, default=new_id, editable=False)
    name = models.CharField(max_length=255)
    # Prefix of every token number issued by this hospital
    code = models.CharField(max_length=20, unique=True)
    address = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=100, blank=True, db_index=True)
    phone = models.CharField(max_length=20, blank=True)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='government')
    open_time = models.CharField(max_length=5, default='08:00')
    close_time = models.CharField(max_length=5, default='20:00')
    has_emergency = models.BooleanField(default=True)
    has_pharmacy = models.BooleanField(default=True)
    has_lab = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.name} ({self.code})"


class Department(models.Model):
    """A service point inside a hospital with a live queue counter.

    ``current_queue`` is shared by every journey passing through the
    department and must only be changed with the atomic helpers in
    :mod:`journeys.services.departments`.
    """
    TYPE_CHOICES = [
        ('registration', 'Registration'),
        ('consultation', 'Consultation'),
        ('diagnostic', 'Diagnostic'),
        ('pharmacy', 'Pharmacy'),
        ('billing', 'Billing'),
        ('emergency', 'Emergency'),
        ('other', 'Other'),
    ]
    id = models.CharField(max_length=32, primary_key=True, default=new_id, editable=False)
    hospital = models.ForeignKey(Hospital, on_delete=models.CASCADE, related_name='departments')
    name = models.CharField(max_length=255)
    code = models.CharField(max_length=20, blank=True)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='other')
    floor = models.IntegerField(default=0)
    wing = models.CharField(max_length=50, blank=True, null=True)
    avg_service_time = models.PositiveIntegerField(default=15, help_text="Average service time (minutes)")
    current_queue = models.PositiveIntegerField(default=0)
    max_capacity = models.PositiveIntegerField(default=50)
    is_open = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.CheckConstraint(condition=models.Q(current_queue__gte=0), name='department_queue_non_negative'),
            models.CheckConstraint(condition=models.Q(avg_service_time__gt=0), name='department_service_time_positive'),
            models.CheckConstraint(condition=models.Q(max_capacity__gt=0), name='department_capacity_positive'),
        ]

    def __str__(self) -> str:
        return f"{self.name} @ {self.hospital_id} (q={self.current_queue})"


class Journey(models.Model):
    STATUS_ACTIVE = 'active'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_PAUSED = 'paused'
    STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
        (STATUS_PAUSED, 'Paused'),
    ]
    # Journeys whose waiting or in-service checkpoints count against department queues
    QUEUE_HOLDING_STATUSES = (STATUS_ACTIVE, STATUS_PAUSED)

    id = models.CharField(max_length=32, primary_key=True, default=new_id, editable=False)
    patient = models.ForeignKey(PatientProfile, on_delete=models.CASCADE, related_name='journeys')
    hospital = models.ForeignKey(Hospital, on_delete=models.CASCADE, related_name='journeys')
    token_number = models.CharField(max_length=40, unique=True)
    visit_type = models.CharField(max_length=20, default='opd')
    chief_complaint = models.TextField(blank=True, null=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)
    progress_percent = models.PositiveSmallIntegerField(default=0)
    estimated_total_minutes = models.PositiveIntegerField(null=True, blank=True)
    actual_total_minutes = models.PositiveIntegerField(null=True, blank=True)
    # Cache only; the checkpoint statuses are authoritative.
    current_checkpoint = models.ForeignKey(
        'Checkpoint', null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    started_at = models.DateTimeField(default=timezone.now)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['hospital', 'created_at'], name='journey_hospital_created_idx'),
            models.Index(fields=['patient', 'status'], name='journey_patient_status_idx'),
        ]
        constraints = [
            models.CheckConstraint(condition=models.Q(progress_percent__lte=100), name='journey_progress_max_100'),
        ]

    def __str__(self) -> str:
        return f"{self.token_number} ({self.status}, {self.progress_percent}%)"


class Checkpoint(models.Model):
    STATUS_CHOICES = CheckpointStatus.choices
    id = models.CharField(max_length=32, primary_key=True, default=new_id, editable=False)
    journey = models.ForeignKey(Journey, on_delete=models.CASCADE, related_name='checkpoints')
    department = models.ForeignKey(Department, on_delete=models.PROTECT, related_name='checkpoints')
    # 1-based, contiguous within a journey
    sequence = models.PositiveIntegerField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=CheckpointStatus.PENDING, db_index=True)
    queue_position = models.PositiveIntegerField(null=True, blank=True)
    estimated_wait_minutes = models.PositiveIntegerField(null=True, blank=True)
    actual_wait_minutes = models.PositiveIntegerField(null=True, blank=True)
    actual_service_minutes = models.PositiveIntegerField(null=True, blank=True)
    arrived_at = models.DateTimeField(null=True, blank=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True, default='')
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['journey', 'sequence']
        constraints = [
            models.UniqueConstraint(fields=['journey', 'sequence'], name='checkpoint_unique_sequence'),
        ]
        indexes = [
            models.Index(fields=['department', 'status'], name='checkpoint_dept_status_idx'),
        ]

    def __str__(self) -> str:
        return f"#{self.sequence} {self.department_id} ({self.status})"


class CheckpointTransition(models.Model):
    """Records a status transition for a checkpoint."""
    checkpoint = models.ForeignKey(Checkpoint, related_name='transitions', on_delete=models.CASCADE)
    from_status = models.CharField(max_length=20, null=True, blank=True)
    to_status = models.CharField(max_length=20)
    operator = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='checkpoint_transitions')
    timestamp = models.DateTimeField(default=timezone.now)
    reason = models.CharField(max_length=255, blank=True)

    def __str__(self) -> str:
        return f"{self.checkpoint_id}: {self.from_status} → {self.to_status}"


class JourneyShare(models.Model):
    """Read access to a journey for a family member, by access code."""
    id = models.CharField(max_length=32, primary_key=True, default=new_id, editable=False)
    journey = models.ForeignKey(Journey, on_delete=models.CASCADE, related_name='shares')
    shared_with_phone = models.CharField(max_length=20, blank=True, null=True)
    shared_with_email = models.EmailField(blank=True, null=True)
    share_type = models.CharField(max_length=20, default='view')
    access_code = models.CharField(max_length=6, db_index=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    notify_on_update = models.BooleanField(default=True)
    notify_via_whatsapp = models.BooleanField(default=True)
    notify_via_sms = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"share {self.journey_id} -> {self.shared_with_phone or self.shared_with_email}"


class QueueStatistics(models.Model):
    """Observed waiting times of one department for one hour of one day.

    Rows are keyed by department code rather than id so history survives
    a department being recreated.  ``day_of_week`` counts from Sunday = 0.
    """
    hospital = models.ForeignKey(Hospital, on_delete=models.CASCADE, related_name='queue_statistics')
    department_code = models.CharField(max_length=20)
    date = models.DateField()
    hour = models.PositiveSmallIntegerField()
    day_of_week = models.PositiveSmallIntegerField()
    avg_wait_time = models.FloatField()
    max_wait_time = models.PositiveIntegerField()
    min_wait_time = models.PositiveIntegerField()
    total_patients = models.PositiveIntegerField(default=1)
    avg_service_time = models.PositiveIntegerField(default=15)
    weather_condition = models.CharField(max_length=50, blank=True, null=True)
    is_holiday = models.BooleanField(default=False)
    special_events = models.TextField(blank=True, null=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=('hospital', 'department_code', 'date', 'hour'), name='queue_stats_unique_bucket'),
            models.CheckConstraint(condition=models.Q(hour__lte=23), name='queue_stats_hour_range'),
            models.CheckConstraint(condition=models.Q(day_of_week__lte=6), name='queue_stats_day_range'),
        ]
        indexes = [
            models.Index(fields=['hospital', 'department_code', 'hour', 'day_of_week'], name='queue_stats_slot_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.department_code} @ {self.hospital_id} {self.date} {self.hour:02d}h"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.CharField(max_length=64, blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='audit_object_created_idx'),
        ]

    def __str__(self):
        return f"{self.action}:{self.object_type}/{self.object_id}"
