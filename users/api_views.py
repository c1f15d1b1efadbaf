"""
API views for accounts.
"""
import logging
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework import status

from .decorators import superadmin_required
from .serializers import UserSerializer, UserRegistrationSerializer, StaffAccountSerializer

logger = logging.getLogger(__name__)


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """
    API endpoint for customer and driver registration.
    Drivers then submit their driver profile for approval.
    """
    serializer = UserRegistrationSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = serializer.save()
    logger.info(f"New {user.user_type} account registered: {user.username}")

    return Response({
        'user': UserSerializer(user).data,
        'message': 'User registered successfully.'
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me(request):
    return Response(UserSerializer(request.user).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@superadmin_required
def create_staff_account(request):
    serializer = StaffAccountSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = serializer.save()
    logger.info(f"Staff account {user.username} ({user.user_type}) created for restaurant {user.restaurant_id} by {request.user}")

    return Response({
        'user': UserSerializer(user).data,
        'message': 'Staff account created.'
    }, status=status.HTTP_201_CREATED)
