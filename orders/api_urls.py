"""
API URL routes for orders.
"""
from django.urls import path
from . import api_views

app_name = 'orders_api'

urlpatterns = [
    path('', api_views.order_list, name='order_list'),
    path('delivery-fee/', api_views.delivery_fee_quote, name='delivery_fee_quote'),
    path('<int:order_id>/', api_views.order_detail, name='order_detail'),
    path('<int:order_id>/status/', api_views.update_order_status, name='update_status'),
]
