from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotAuthenticated, PermissionDenied
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from ..permissions import IsStaffRole, is_admin_user
from ..serializers.hospital import HospitalCreateSerializer, HospitalListQuerySerializer
from ..services.audit import log_action
from ..services.hospitals import create_hospital, format_hospital, list_hospitals
from ..services.journeys import format_journey, list_hospital_journeys


@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
def hospitals(request):
    """Public hospital directory (GET); administrators add hospitals (POST)."""
    if request.method == 'GET':
        q = HospitalListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        data = list_hospitals(city=q.validated_data.get('city') or None,
                              with_departments=q.validated_data.get('departments', False))
        return Response({'ok': True, 'hospitals': data})

    user = request.user
    if not (user and user.is_authenticated):
        raise NotAuthenticated()
    if not is_admin_user(user):
        raise PermissionDenied('Only administrators may add hospitals')
    s = HospitalCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    hospital = create_hospital(s.validated_data)
    log_action(user=user, action='hospital_create', object_type='hospital', object_id=hospital.id,
               detail={'code': hospital.code})
    return Response(
        {'ok': True, 'hospital': format_hospital(hospital, hospital.departments.order_by('type', 'name'))},
        status=status.HTTP_201_CREATED,
    )


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffRole])
def hospital_journeys(request, pk: str):
    """Journeys of a hospital for the staff board, ``?status=active|all|...``."""
    items = list_hospital_journeys(pk, status=request.query_params.get('status') or 'active')
    return Response({
        'ok': True,
        'hospitalId': pk,
        'journeys': [format_journey(j) for j in items],
        'count': len(items),
    })
