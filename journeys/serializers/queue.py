import bleach
from rest_framework import serializers


class QueuePredictQuerySerializer(serializers.Serializer):
    departmentId = serializers.CharField(max_length=32)


class QueueStatsLogSerializer(serializers.Serializer):
    hospitalId = serializers.CharField(max_length=32)
    departmentCode = serializers.CharField(max_length=20)
    avgWaitTime = serializers.FloatField(min_value=0)
    maxWaitTime = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    minWaitTime = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    totalPatients = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    avgServiceTime = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    weatherCondition = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True)
    isHoliday = serializers.BooleanField(required=False, default=False)
    specialEvents = serializers.CharField(max_length=500, required=False, allow_blank=True, allow_null=True)

    def validate_specialEvents(self, v):
        return bleach.clean(v.strip(), strip=True) if v else v

    def validate(self, attrs):
        low, high = attrs.get('minWaitTime'), attrs.get('maxWaitTime')
        if low is not None and high is not None and low > high:
            raise serializers.ValidationError('minWaitTime must not exceed maxWaitTime')
        return attrs
