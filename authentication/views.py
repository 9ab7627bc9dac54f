import logging

from django.contrib.auth import update_session_auth_hash
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from .serializers import UserDetailSerializer, ChangePasswordSerializer

logger = logging.getLogger(__name__)


@api_view(['GET'])
@permission_classes([AllowAny])
def health_check(request):
    return Response({
        'status': 'healthy',
        'message': 'ERP operations API is running',
        'timestamp': timezone.now(),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me(request):
    """
    Current user, as identified by the bearer token
    """
    return Response(UserDetailSerializer(request.user).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def change_password(request):
    serializer = ChangePasswordSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = request.user

    if not user.check_password(serializer.validated_data['old_password']):
        return Response({'error': 'Old password is incorrect'}, status=status.HTTP_400_BAD_REQUEST)

    user.set_password(serializer.validated_data['new_password'])
    user.save()

    # Keep session-authenticated clients logged in
    update_session_auth_hash(request, user)
    logger.info(f"Password changed for {user.username}")
    return Response({'message': 'Password changed successfully'})
