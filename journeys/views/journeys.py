"""
Journey endpoints.

Patients start journeys and watch them progress; hospital staff move
checkpoints along.  Clients poll ``GET /api/journey/<id>`` every
``pollIntervalSeconds`` for updates; there is no push channel.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.exceptions import NotAuthenticated, PermissionDenied
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from ..exceptions import PatientProfileNotFound
from ..models import PatientProfile
from ..permissions import IsStaffRole
from ..serializers.journey import (
    CheckpointUpdateSerializer,
    JourneyCreateSerializer,
    JourneyListQuerySerializer,
    JourneyStatusSerializer,
    ShareCreateSerializer,
)
from ..services.journeys import (
    can_manage_journey,
    format_checkpoint,
    format_journey,
    get_journey,
    list_patient_journeys,
    start_journey,
    transition_checkpoint,
    update_journey_status,
)
from ..services.shares import (
    can_view_journey,
    create_share,
    format_share,
    list_shares,
    revoke_share,
    verify_share_code,
)
from ..throttling import JOURNEY_THROTTLES


def _is_authenticated(user) -> bool:
    return bool(user and user.is_authenticated)


def _patient_profile(user) -> PatientProfile:
    profile = PatientProfile.objects.filter(user=user).first()
    if profile is None:
        raise PatientProfileNotFound()
    return profile


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@throttle_classes(JOURNEY_THROTTLES)
def journeys(request):
    """List the caller's journeys or start a new one."""
    profile = _patient_profile(request.user)
    if request.method == 'GET':
        q = JourneyListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        items = list_patient_journeys(profile, status=q.validated_data.get('status'))
        return Response({'ok': True, 'journeys': [format_journey(j) for j in items]})

    s = JourneyCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    journey = start_journey(
        profile,
        vd['hospitalId'],
        visit_type=vd.get('visitType'),
        department_ids=vd.get('departmentIds') or [],
        chief_complaint=vd.get('chiefComplaint'),
        user=request.user,
    )
    journey = get_journey(journey.id)
    return Response({'ok': True, 'journey': format_journey(journey, detail=True), 'message': 'Journey started'})


@api_view(['GET', 'PATCH'])
@permission_classes([AllowAny])
@throttle_classes(JOURNEY_THROTTLES)
def journey_detail(request, pk: str):
    """Read a journey (owner, staff, shared patient or share code) or change its status.

    ``GET ?share=<code>`` works without logging in; a wrong or expired code
    is a 403 rather than a fallback to the caller's own access.
    """
    user = request.user
    if request.method == 'PATCH':
        if not _is_authenticated(user):
            raise NotAuthenticated()
        journey = get_journey(pk)
        if not can_manage_journey(user, journey):
            raise PermissionDenied('You may not change this journey')
        s = JourneyStatusSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        update_journey_status(journey.id, s.validated_data['status'], user=user)
        return Response({'ok': True, 'journey': format_journey(get_journey(pk), detail=True)})

    journey = get_journey(pk)
    code = request.query_params.get('share')
    if code is not None:
        verify_share_code(journey.id, code)
    elif not _is_authenticated(user):
        raise NotAuthenticated()
    elif not can_view_journey(user, journey):
        raise PermissionDenied('You may not view this journey')
    return Response({'ok': True, 'journey': format_journey(journey, detail=True)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
@throttle_classes(JOURNEY_THROTTLES)
def journey_checkpoint(request, pk: str):
    """Move a checkpoint to a new status; completing or skipping it advances the journey."""
    s = CheckpointUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    checkpoint, _ = transition_checkpoint(
        pk,
        vd['checkpointId'],
        vd['status'],
        notes=vd.get('notes'),
        actual_service_minutes=vd.get('actualServiceMinutes'),
        operator=request.user,
    )
    return Response({
        'ok': True,
        'checkpoint': format_checkpoint(checkpoint),
        'journey': format_journey(get_journey(pk), detail=True),
    })


@api_view(['GET', 'POST', 'DELETE'])
@permission_classes([IsAuthenticated])
@throttle_classes(JOURNEY_THROTTLES)
def journey_share(request, pk: str):
    """Share codes for family members: list, create, revoke (``?shareId=``)."""
    journey = get_journey(pk)
    if request.method == 'GET':
        if not can_manage_journey(request.user, journey):
            raise PermissionDenied('You may not view shares of this journey')
        return Response({'ok': True, 'shares': [format_share(sh) for sh in list_shares(journey)]})

    if request.method == 'DELETE':
        if not can_manage_journey(request.user, journey):
            raise PermissionDenied('You may not revoke shares of this journey')
        share_id = request.query_params.get('shareId') or request.data.get('shareId')
        revoke_share(journey, share_id, user=request.user)
        return Response({'ok': True, 'message': 'Share revoked'})

    s = ShareCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    share, url = create_share(
        journey,
        PatientProfile.objects.filter(user=request.user).first(),
        phone=vd.get('phone'),
        email=vd.get('email'),
        share_type=vd.get('shareType') or 'view',
        expires_in_hours=vd.get('expiresInHours'),
        notify_via_whatsapp=vd.get('notifyViaWhatsApp', True),
        notify_via_sms=vd.get('notifyViaSMS', False),
        user=request.user,
    )
    return Response({
        'ok': True,
        'share': format_share(share),
        'shareUrl': url,
        'accessCode': share.access_code,
        'message': f'Share link created: {url}',
    }, status=status.HTTP_201_CREATED)
