from rest_framework.permissions import SAFE_METHODS
from rest_framework.throttling import AnonRateThrottle, UserRateThrottle


class LoginRateThrottle(AnonRateThrottle):
    scope = 'login'


class JourneyWriteThrottle(UserRateThrottle):
    """Per-user limit on requests that change journeys; reads are not counted."""
    scope = 'journey_write'

    def allow_request(self, request, view):
        if request.method in SAFE_METHODS:
            return True
        return super().allow_request(request, view)


JOURNEY_THROTTLES = [AnonRateThrottle, UserRateThrottle, JourneyWriteThrottle]
