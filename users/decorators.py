"""
Role decorators for API views.

Applied under @api_view so request.user is already authenticated by DRF.
"""
from functools import wraps
from rest_framework import status
from rest_framework.response import Response


def superadmin_required(view_func):
    """
    Decorator to require a superadmin account.
    """
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated or not request.user.is_superadmin:
            return Response(
                {'error': 'Access denied. Superadmin account required.'},
                status=status.HTTP_403_FORBIDDEN
            )
        return view_func(request, *args, **kwargs)

    return wrapper


def driver_required(view_func):
    """
    Decorator to require a driver account with a driver profile.
    The profile is attached to the request as request.driver.
    """
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated or not request.user.is_driver:
            return Response(
                {'error': 'Only drivers can access this endpoint'},
                status=status.HTTP_403_FORBIDDEN
            )

        driver = getattr(request.user, 'driver_profile', None)
        if driver is None:
            return Response(
                {'error': 'Driver profile not found. Please complete registration first.'},
                status=status.HTTP_404_NOT_FOUND
            )

        request.driver = driver
        return view_func(request, *args, **kwargs)

    return wrapper


def restaurant_staff_or_admin_required(view_func):
    """
    Decorator to require restaurant staff (admin or kitchen) or a superadmin.
    """
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        user = request.user
        if not user.is_authenticated or not (user.is_restaurant_staff or user.is_superadmin):
            return Response(
                {'error': 'Access denied.'},
                status=status.HTTP_403_FORBIDDEN
            )
        return view_func(request, *args, **kwargs)

    return wrapper
