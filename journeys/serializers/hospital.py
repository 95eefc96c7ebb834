import bleach
from rest_framework import serializers

from journeys.models import Department, Hospital


class DepartmentInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    code = serializers.CharField(max_length=20, required=False, allow_blank=True)
    type = serializers.ChoiceField(choices=[c for c, _ in Department.TYPE_CHOICES], required=False)
    floor = serializers.IntegerField(required=False, min_value=-5, max_value=200)
    wing = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True)
    avgServiceTime = serializers.IntegerField(source='avg_service_time', required=False, min_value=1, max_value=600)
    maxCapacity = serializers.IntegerField(source='max_capacity', required=False, min_value=1)

    def validate_name(self, v):
        v = bleach.clean((v or '').strip(), strip=True)
        if not v:
            raise serializers.ValidationError('Department name is required')
        return v


class HospitalCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    code = serializers.RegexField(r'^[A-Za-z0-9_]{2,20}$')
    address = serializers.CharField(max_length=255, required=False, allow_blank=True)
    city = serializers.CharField(max_length=100, required=False, allow_blank=True)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    type = serializers.ChoiceField(choices=[c for c, _ in Hospital.TYPE_CHOICES], required=False)
    openTime = serializers.RegexField(r'^\d{2}:\d{2}$', source='open_time', required=False)
    closeTime = serializers.RegexField(r'^\d{2}:\d{2}$', source='close_time', required=False)
    hasEmergency = serializers.BooleanField(source='has_emergency', required=False, default=True)
    hasPharmacy = serializers.BooleanField(source='has_pharmacy', required=False, default=True)
    hasLab = serializers.BooleanField(source='has_lab', required=False, default=True)
    departments = DepartmentInputSerializer(many=True, required=False)

    def validate_name(self, v):
        v = bleach.clean((v or '').strip(), strip=True)
        if not v:
            raise serializers.ValidationError('Hospital name is required')
        return v


class HospitalListQuerySerializer(serializers.Serializer):
    city = serializers.CharField(max_length=100, required=False, allow_blank=True)
    departments = serializers.BooleanField(required=False, default=False)
