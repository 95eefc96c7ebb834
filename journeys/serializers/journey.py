import bleach
from rest_framework import serializers

from journeys.models import Journey


class JourneyCreateSerializer(serializers.Serializer):
    hospitalId = serializers.CharField(max_length=32, error_messages={'required': 'hospitalId is required'})
    visitType = serializers.CharField(max_length=20, required=False, allow_blank=True)
    chiefComplaint = serializers.CharField(max_length=2000, required=False, allow_blank=True, allow_null=True)
    departmentIds = serializers.ListField(child=serializers.CharField(max_length=32), required=False, default=list)

    def validate_visitType(self, v):
        return bleach.clean((v or '').strip(), strip=True) or 'opd'


class CheckpointUpdateSerializer(serializers.Serializer):
    checkpointId = serializers.CharField(max_length=32)
    # Parsed by the state machine.
    status = serializers.CharField(max_length=20)
    notes = serializers.CharField(max_length=2000, required=False, allow_blank=True, allow_null=True)
    actualServiceMinutes = serializers.IntegerField(min_value=0, max_value=24 * 60, required=False, allow_null=True)


class JourneyStatusSerializer(serializers.Serializer):
    # Checked by update_journey_status.
    status = serializers.CharField(max_length=20)


class JourneyListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c for c, _ in Journey.STATUS_CHOICES], required=False)


class ShareCreateSerializer(serializers.Serializer):
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)
    shareType = serializers.ChoiceField(choices=['view'], required=False, default='view')
    expiresInHours = serializers.IntegerField(min_value=1, max_value=24 * 30, required=False, allow_null=True)
    notifyViaWhatsApp = serializers.BooleanField(required=False, default=True)
    notifyViaSMS = serializers.BooleanField(required=False, default=False)

    def validate(self, attrs):
        if not attrs.get('phone') and not attrs.get('email'):
            raise serializers.ValidationError('Phone or email is required')
        return attrs
