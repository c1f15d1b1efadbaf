"""
API URL routes for driver credit.
"""
from django.urls import path
from . import api_views

app_name = 'credit_api'

urlpatterns = [
    # Driver
    path('requests/', api_views.submit_request, name='submit_request'),
    path('status/', api_views.request_status, name='request_status'),
    path('transactions/', api_views.my_transactions, name='my_transactions'),

    # Superadmin
    path('requests/pending/', api_views.pending_requests, name='pending_requests'),
    path('requests/<int:request_id>/approve/', api_views.approve_request, name='approve_request'),
    path('requests/<int:request_id>/reject/', api_views.reject_request, name='reject_request'),
    path('drivers/<int:driver_id>/adjust/', api_views.adjust_balance, name='adjust_balance'),
    path('drivers/<int:driver_id>/transactions/', api_views.driver_transactions, name='driver_transactions'),
]
