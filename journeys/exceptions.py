"""
Typed errors raised by the journey services and the project-wide DRF
exception handler that turns them into responses.

Every service error is an ``APIException`` so it reaches the caller with
its own status code.  Anything else is logged and reported as a generic
500 without internal detail.
"""
import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class JourneyError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'journey request failed'
    default_code = 'journey_error'


class NotFound(JourneyError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'not found'
    default_code = 'not_found'


class HospitalNotFound(NotFound):
    # Journey creation reports an unknown hospital as a bad request.
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Hospital not found'
    default_code = 'hospital_not_found'


class JourneyNotFound(NotFound):
    default_detail = 'Journey not found'
    default_code = 'journey_not_found'


class CheckpointNotFound(NotFound):
    default_detail = 'Checkpoint not found'
    default_code = 'checkpoint_not_found'


class DepartmentNotFound(NotFound):
    default_detail = 'Department not found'
    default_code = 'department_not_found'


class ShareNotFound(NotFound):
    default_detail = 'Share not found'
    default_code = 'share_not_found'


class PatientProfileNotFound(NotFound):
    default_detail = 'Patient profile not found'
    default_code = 'patient_profile_not_found'


class InvalidInput(JourneyError):
    default_detail = 'invalid input'
    default_code = 'invalid_input'


class InvalidStatus(InvalidInput):
    default_detail = 'Invalid status'
    default_code = 'invalid_status'


class InvalidTransition(InvalidInput):
    default_detail = 'Invalid status transition'
    default_code = 'invalid_transition'


class UnknownDepartment(InvalidInput):
    default_detail = 'Department does not belong to this hospital'
    default_code = 'unknown_department'


class ShareAccessDenied(JourneyError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'Invalid or expired share code'
    default_code = 'share_access_denied'


class PersistenceFailure(JourneyError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'Failed to save journey changes'
    default_code = 'persistence_failure'


def api_exception_handler(exc, context):
    if isinstance(exc, DatabaseError):
        exc = PersistenceFailure()
    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception('unhandled error in %s', context.get('view').__class__.__name__ if context else '-', exc_info=exc)
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': 'Internal server error'}}, status=500)
    if resp.status_code >= 500:
        logger.error('request failed with %s: %s', resp.status_code, exc)
    # normalize response
    if isinstance(exc, APIException):
        code = exc.get_codes() if isinstance(exc.detail, str) else exc.default_code
    else:
        code = 'api_error'
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = resp.data
    return Response({'ok': False, 'error': {'code': code, 'message': detail}}, status=resp.status_code)
