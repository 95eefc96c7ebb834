"""Audit trail: who did what to which journey object."""
from typing import Any, Dict, Optional

from django.contrib.auth import get_user_model

from journeys.models import AuditEvent

User = get_user_model()


def log_action(*, user: Optional[User], action: str, object_type: Optional[str] = None,
               object_id: Optional[str] = None, detail: Optional[Dict[str, Any]] = None) -> AuditEvent:
    """Record an audit event; anonymous callers are stored without a user."""
    return AuditEvent.objects.create(
        user=user if isinstance(user, User) else None,
        action=action,
        object_type=object_type,
        object_id=str(object_id) if object_id is not None else None,
        detail=detail or {},
    )
