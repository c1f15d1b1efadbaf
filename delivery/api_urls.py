"""
API URL routes for drivers.
"""
from django.urls import path
from . import api_views

app_name = 'delivery_api'

urlpatterns = [
    # Driver self-service
    path('register/', api_views.register, name='register'),
    path('me/', api_views.profile, name='profile'),
    path('me/status/', api_views.update_status, name='update_status'),
    path('me/location/', api_views.update_location, name='update_location'),
    path('me/active-order/', api_views.active_order, name='active_order'),

    # Superadmin
    path('', api_views.driver_list, name='driver_list'),
    path('<int:driver_id>/', api_views.driver_detail, name='driver_detail'),
    path('<int:driver_id>/approve/', api_views.approve_driver, name='approve_driver'),
    path('<int:driver_id>/reject/', api_views.reject_driver, name='reject_driver'),
    path('<int:driver_id>/block/', api_views.block_driver, name='block_driver'),
    path('<int:driver_id>/unblock/', api_views.unblock_driver, name='unblock_driver'),
    path('assign/<int:order_id>/', api_views.assign_order, name='assign_order'),
]
