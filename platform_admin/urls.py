"""
Platform Admin URLs
"""
from django.urls import path
from . import views

app_name = 'platform_admin'

urlpatterns = [
    # Dashboard overview
    path('', views.dashboard_overview, name='dashboard'),

    # Order monitoring
    path('orders/', views.monitor_orders, name='orders'),
]
