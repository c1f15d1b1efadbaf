"""
API views for drivers: registration, status, location, and the
superadmin driver management surface.
"""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework import status

from users.decorators import driver_required, superadmin_required
from delivery.models import Driver
from delivery.serializers import (
    DriverSerializer, DriverListSerializer, DriverRegistrationSerializer,
    DriverStatusSerializer, DriverLocationSerializer,
)
from delivery import services
from delivery.assignment import assign_driver_or_raise


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def register(request):
    """Driver submits their profile and documents for approval."""
    if not request.user.is_driver:
        return Response({'error': 'Only driver accounts can register as drivers'}, status=403)

    serializer = DriverRegistrationSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    driver = services.register_driver(request.user, **serializer.validated_data)
    return Response(DriverSerializer(driver).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@driver_required
def profile(request):
    return Response(DriverSerializer(request.driver).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@driver_required
def update_status(request):
    """Toggle online / available."""
    serializer = DriverStatusSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    driver = services.set_driver_status(
        request.driver.id,
        serializer.validated_data['is_online'],
        serializer.validated_data.get('is_available'),
    )
    return Response({
        'message': 'Status updated',
        'is_online': driver.is_online,
        'is_available': driver.is_available,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@driver_required
def update_location(request):
    serializer = DriverLocationSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    driver = services.update_driver_location(
        request.driver.id,
        serializer.validated_data['latitude'],
        serializer.validated_data['longitude'],
    )
    return Response({
        'message': 'Location updated',
        'latitude': float(driver.current_latitude),
        'longitude': float(driver.current_longitude),
        'last_location_update': driver.last_location_update.isoformat(),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@driver_required
def active_order(request):
    """The order the driver is currently holding, if any."""
    order = services.get_active_order(request.driver.id)
    if order is None:
        return Response({'active_order': None})

    return Response({
        'active_order': {
            'order_id': order.id,
            'order_number': order.order_number,
            'status': order.status,
            'restaurant_name': order.restaurant.name,
            'restaurant_address': order.restaurant.address,
            'delivery_address': order.delivery_address,
            'contact_phone': order.contact_phone,
            'payment_method': order.payment_method,
            'total': float(order.total),
            'assigned_at': order.assigned_at.isoformat() if order.assigned_at else None,
        }
    })


# Superadmin driver management

@api_view(['GET'])
@permission_classes([IsAuthenticated])
@superadmin_required
def driver_list(request):
    """All drivers, optionally filtered by ?status=pending|approved|rejected|online|blocked."""
    drivers = Driver.objects.all()
    status_filter = request.query_params.get('status')
    if status_filter == 'pending':
        drivers = drivers.filter(is_approved=False, rejection_reason='')
    elif status_filter == 'approved':
        drivers = drivers.filter(is_approved=True)
    elif status_filter == 'rejected':
        drivers = drivers.filter(is_approved=False).exclude(rejection_reason='')
    elif status_filter == 'online':
        drivers = drivers.filter(is_online=True)
    elif status_filter == 'blocked':
        drivers = drivers.filter(is_blocked=True)

    return Response({'drivers': DriverListSerializer(drivers, many=True).data})


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated])
@superadmin_required
def driver_detail(request, driver_id):
    if request.method == 'DELETE':
        services.delete_driver(driver_id, admin=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    driver = services.get_driver(driver_id)
    return Response(DriverSerializer(driver).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@superadmin_required
def approve_driver(request, driver_id):
    driver = services.approve_driver(driver_id, admin=request.user)
    return Response({
        'message': f'Driver {driver.name} approved',
        'driver': DriverSerializer(driver).data
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@superadmin_required
def reject_driver(request, driver_id):
    driver = services.reject_driver(driver_id, admin=request.user, reason=request.data.get('reason', ''))
    return Response({
        'message': f'Driver {driver.name} rejected',
        'driver': DriverSerializer(driver).data
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@superadmin_required
def block_driver(request, driver_id):
    driver = services.block_driver(driver_id, admin=request.user)
    return Response({
        'message': f'Driver {driver.name} blocked',
        'driver': DriverSerializer(driver).data
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@superadmin_required
def unblock_driver(request, driver_id):
    driver = services.unblock_driver(driver_id, admin=request.user)
    return Response({
        'message': f'Driver {driver.name} unblocked',
        'driver': DriverSerializer(driver).data
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@superadmin_required
def assign_order(request, order_id):
    """Assign a driver to the order now, or report why nobody is eligible."""
    driver = assign_driver_or_raise(order_id)
    return Response({
        'message': f'Driver {driver.name} assigned',
        'order_id': order_id,
        'driver': DriverListSerializer(driver).data
    })
