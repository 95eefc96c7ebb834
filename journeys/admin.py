"""
Django admin registrations for the journey models.

Department queue counters are read-only here; use the ``recount_queues``
command to repair them.
"""

from django.contrib import admin

from .models import (
    AuditEvent,
    Checkpoint,
    CheckpointTransition,
    Department,
    Hospital,
    Journey,
    JourneyShare,
    PatientProfile,
    QueueStatistics,
    User,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'role', 'is_staff', 'is_superuser')
    list_filter = ('role',)
    search_fields = ('username', 'first_name', 'last_name')


@admin.register(PatientProfile)
class PatientProfileAdmin(admin.ModelAdmin):
    list_display = ('full_name', 'user', 'phone')
    search_fields = ('full_name', 'user__username', 'phone')


class DepartmentInline(admin.TabularInline):
    model = Department
    extra = 0
    readonly_fields = ('current_queue',)


@admin.register(Hospital)
class HospitalAdmin(admin.ModelAdmin):
    list_display = ('name', 'code', 'city', 'type')
    list_filter = ('type', 'city')
    search_fields = ('name', 'code', 'city')
    inlines = [DepartmentInline]


@admin.register(Department)
class DepartmentAdmin(admin.ModelAdmin):
    list_display = ('name', 'hospital', 'type', 'current_queue', 'avg_service_time', 'is_open')
    list_filter = ('type', 'is_open', 'hospital')
    search_fields = ('name', 'code', 'hospital__name')
    readonly_fields = ('current_queue',)


class CheckpointInline(admin.TabularInline):
    model = Checkpoint
    extra = 0
    fields = ('sequence', 'department', 'status', 'queue_position', 'arrived_at', 'started_at', 'completed_at')
    readonly_fields = fields


@admin.register(Journey)
class JourneyAdmin(admin.ModelAdmin):
    list_display = ('token_number', 'patient', 'hospital', 'status', 'progress_percent', 'created_at')
    list_filter = ('status', 'hospital')
    search_fields = ('token_number', 'patient__full_name', 'patient__phone')
    inlines = [CheckpointInline]


@admin.register(CheckpointTransition)
class CheckpointTransitionAdmin(admin.ModelAdmin):
    list_display = ('checkpoint', 'from_status', 'to_status', 'operator', 'timestamp', 'reason')
    list_filter = ('to_status',)


@admin.register(JourneyShare)
class JourneyShareAdmin(admin.ModelAdmin):
    list_display = ('journey', 'shared_with_phone', 'shared_with_email', 'is_active', 'expires_at')
    list_filter = ('is_active',)


@admin.register(QueueStatistics)
class QueueStatisticsAdmin(admin.ModelAdmin):
    list_display = ('hospital', 'department_code', 'date', 'hour', 'avg_wait_time', 'total_patients')
    list_filter = ('day_of_week', 'is_holiday')
    search_fields = ('department_code',)


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'user', 'object_type', 'object_id', 'created_at')
    list_filter = ('action',)
    search_fields = ('object_id',)
