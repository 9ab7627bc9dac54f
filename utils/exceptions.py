"""
API exception handling
Maps service-layer exceptions onto the {"error": ...} response bodies the
API clients display
"""
import logging

from django.core.exceptions import ObjectDoesNotExist, ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ConcurrentAllocationError(DjangoValidationError):
    """A concurrent request changed the row between read and write"""


def _messages(exc):
    if hasattr(exc, 'message_dict'):
        return [
            f"{field}: {message}" if field != '__all__' else message
            for field, messages in exc.message_dict.items()
            for message in messages
        ]
    return list(exc.messages)


def api_exception_handler(exc, context):
    """
    DRF exception handler.

    Django ValidationError -> 400, ConcurrentAllocationError -> 409,
    ObjectDoesNotExist -> 404. Anything else is left to DRF.
    """
    if isinstance(exc, ConcurrentAllocationError):
        messages = _messages(exc)
        logger.warning(f"Concurrent modification rejected: {messages}")
        return Response(
            {'error': messages[0] if messages else 'Concurrent modification', 'details': messages},
            status=status.HTTP_409_CONFLICT
        )

    if isinstance(exc, DjangoValidationError):
        messages = _messages(exc)
        return Response(
            {'error': '; '.join(messages), 'details': messages},
            status=status.HTTP_400_BAD_REQUEST
        )

    if isinstance(exc, ObjectDoesNotExist):
        return Response({'error': str(exc) or 'Not found'}, status=status.HTTP_404_NOT_FOUND)

    return exception_handler(exc, context)
