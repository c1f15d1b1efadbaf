from django.urls import path
from . import api_views

app_name = 'users_api'

urlpatterns = [
    path('register/', api_views.register, name='register'),
    path('me/', api_views.me, name='me'),
    path('staff/', api_views.create_staff_account, name='create_staff_account'),
]
