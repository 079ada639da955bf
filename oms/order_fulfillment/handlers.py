"""
DRF exception handler rendering every error in the API envelope:

    {"success": false, "error": {"code": ..., "message": ..., "details": ...}}
"""

import logging

from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from .exceptions import BusinessException, InternalErrorException

logger = logging.getLogger(__name__)

DRF_ERROR_CODES = {
    exceptions.ValidationError: 'VALIDATION_ERROR',
    exceptions.ParseError: 'VALIDATION_ERROR',
    exceptions.NotAuthenticated: 'NOT_AUTHENTICATED',
    exceptions.AuthenticationFailed: 'NOT_AUTHENTICATED',
    exceptions.PermissionDenied: 'FORBIDDEN',
    exceptions.NotFound: 'NOT_FOUND_OR_FORBIDDEN',
    exceptions.MethodNotAllowed: 'METHOD_NOT_ALLOWED',
    exceptions.Throttled: 'THROTTLED',
}


def error_response(code, message, details=None, http_status=status.HTTP_400_BAD_REQUEST):
    return Response({
        'success': False,
        'error': {
            'code': code,
            'message': message,
            'details': details or {},
        }
    }, status=http_status)


def business_exception_handler(exc, context):
    """Registered as REST_FRAMEWORK['EXCEPTION_HANDLER']."""
    if isinstance(exc, BusinessException):
        if isinstance(exc, InternalErrorException):
            logger.error(f"Internal error in {context.get('view').__class__.__name__}: {exc.message}")
        return error_response(exc.code, exc.message, exc.details, exc.status_code)

    if isinstance(exc, Http404):
        exc = exceptions.NotFound()

    response = exception_handler(exc, context)
    if response is None:
        return None

    code = next(
        (code for exc_class, code in DRF_ERROR_CODES.items() if isinstance(exc, exc_class)),
        'API_ERROR'
    )
    if isinstance(exc, exceptions.ValidationError):
        message = "Invalid input"
        details = response.data
    else:
        message = str(exc.detail) if hasattr(exc, 'detail') else str(exc)
        details = {}

    error = error_response(code, message, details, response.status_code)
    for header in ('WWW-Authenticate', 'Retry-After', 'Allow'):
        if header in response:
            error[header] = response[header]
    return error
