from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from ..permissions import IsStaffRole
from ..serializers.queue import QueuePredictQuerySerializer, QueueStatsLogSerializer
from ..services.queue_stats import format_stats, log_stats, predict_wait
from ..throttling import JOURNEY_THROTTLES


@api_view(['GET'])
@permission_classes([AllowAny])
@throttle_classes(JOURNEY_THROTTLES)
def queue_predict(request):
    """Predicted wait for a department, ``?departmentId=``."""
    q = QueuePredictQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return Response({'ok': True, **predict_wait(q.validated_data['departmentId'])})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
@throttle_classes(JOURNEY_THROTTLES)
def queue_stats_log(request):
    """Store this hour's waiting figures for a department."""
    s = QueueStatsLogSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    row, created = log_stats(
        vd['hospitalId'],
        vd['departmentCode'],
        avg_wait_time=vd['avgWaitTime'],
        max_wait_time=vd.get('maxWaitTime'),
        min_wait_time=vd.get('minWaitTime'),
        total_patients=vd.get('totalPatients'),
        avg_service_time=vd.get('avgServiceTime'),
        weather_condition=vd.get('weatherCondition'),
        is_holiday=vd.get('isHoliday', False),
        special_events=vd.get('specialEvents'),
    )
    return Response({'ok': True, 'created': created, 'stats': format_stats(row)})
