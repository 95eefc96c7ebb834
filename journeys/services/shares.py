"""
Sharing a journey with family members.

A share hands out a 6-digit access code.  Anyone holding a valid code can
read the journey without logging in; a logged-in patient whose phone
number matches an active share can read it too.
"""
from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings
from django.db.models import Q
from django.utils import timezone

from journeys.exceptions import InvalidInput, JourneyNotFound, ShareAccessDenied, ShareNotFound
from journeys.models import Journey, JourneyShare, PatientProfile
from journeys.permissions import is_staff_user
from journeys.services.audit import log_action

logger = logging.getLogger(__name__)


def generate_access_code() -> str:
    return str(100000 + secrets.randbelow(900000))


def share_url(journey_id: str, code: str) -> str:
    return f"{settings.JOURNEY_SHARE_BASE_URL}/journey/track/{journey_id}?share={code}"


def _live(qs, now: datetime):
    return qs.filter(is_active=True).filter(Q(expires_at__isnull=True) | Q(expires_at__gt=now))


def create_share(journey: Journey, owner: Optional[PatientProfile], *, phone: Optional[str] = None,
                 email: Optional[str] = None, share_type: str = 'view', expires_in_hours: Optional[int] = None,
                 notify_via_whatsapp: bool = True, notify_via_sms: bool = False,
                 user=None, now: Optional[datetime] = None) -> tuple[JourneyShare, str]:
    """Create a share for a journey the caller owns; returns ``(share, url)``."""
    if owner is None or journey.patient_id != owner.id:
        # Someone else's journey looks the same as a missing one.
        raise JourneyNotFound('Journey not found or unauthorized')
    if not phone and not email:
        raise InvalidInput('Phone or email is required')
    now = now or timezone.now()
    share = JourneyShare.objects.create(
        journey=journey,
        shared_with_phone=phone or None,
        shared_with_email=email or None,
        share_type=share_type or 'view',
        access_code=generate_access_code(),
        expires_at=now + timedelta(hours=expires_in_hours) if expires_in_hours else None,
        notify_on_update=True,
        notify_via_whatsapp=notify_via_whatsapp,
        notify_via_sms=notify_via_sms,
    )
    log_action(user=user, action='share_create', object_type='journey_share', object_id=share.id,
               detail={'journeyId': journey.id})
    logger.info('journey %s shared (share %s, expires %s)', journey.id, share.id, share.expires_at)
    return share, share_url(journey.id, share.access_code)


def verify_share_code(journey_id: str, code: Optional[str], now: Optional[datetime] = None) -> JourneyShare:
    """Return the live share behind ``code`` or raise ``ShareAccessDenied``."""
    now = now or timezone.now()
    share = None
    if code:
        share = _live(JourneyShare.objects.filter(journey_id=journey_id, access_code=code), now).first()
    if share is None:
        logger.info('rejected share code for journey %s', journey_id)
        raise ShareAccessDenied()
    return share


def list_shares(journey: Journey):
    return list(journey.shares.filter(is_active=True).order_by('-created_at'))


def revoke_share(journey: Journey, share_id: Optional[str], *, user=None) -> JourneyShare:
    if not share_id:
        raise InvalidInput('shareId is required')
    share = journey.shares.filter(id=share_id).first()
    if share is None:
        raise ShareNotFound()
    if share.is_active:
        share.is_active = False
        share.save(update_fields=['is_active'])
        log_action(user=user, action='share_revoke', object_type='journey_share', object_id=share.id,
                   detail={'journeyId': journey.id})
        logger.info('share %s of journey %s revoked', share.id, journey.id)
    return share


def can_view_journey(user, journey: Journey, now: Optional[datetime] = None) -> bool:
    """Owner, hospital staff, or a patient whose phone has an active share."""
    if not (user and user.is_authenticated):
        return False
    if is_staff_user(user):
        return True
    profile = getattr(user, 'patient_profile', None)
    if profile is None:
        return False
    if journey.patient_id == profile.id:
        return True
    if not profile.phone:
        return False
    return _live(journey.shares.filter(shared_with_phone=profile.phone), now or timezone.now()).exists()


def format_share(share: JourneyShare) -> dict:
    return {
        'id': share.id,
        'journeyId': share.journey_id,
        'sharedWithPhone': share.shared_with_phone,
        'sharedWithEmail': share.shared_with_email,
        'shareType': share.share_type,
        'accessCode': share.access_code,
        'expiresAt': share.expires_at.isoformat() if share.expires_at else None,
        'isActive': share.is_active,
        'notifyViaWhatsapp': share.notify_via_whatsapp,
        'notifyViaSms': share.notify_via_sms,
        'createdAt': share.created_at.isoformat() if share.created_at else None,
    }
