"""
WebSocket URL routing for real-time notifications.
"""
from django.urls import re_path
from . import consumers

websocket_urlpatterns = [
    # Superadmin dashboard
    re_path(r'ws/dashboard/$', consumers.DashboardConsumer.as_asgi()),

    # Driver notifications
    re_path(r'ws/driver/notifications/$', consumers.DriverNotificationConsumer.as_asgi()),

    # Restaurant kitchen notifications
    re_path(r'ws/restaurant/(?P<restaurant_id>\d+)/$', consumers.RestaurantConsumer.as_asgi()),

    # Order tracking
    re_path(r'ws/orders/(?P<order_id>\d+)/$', consumers.OrderTrackingConsumer.as_asgi()),
]
