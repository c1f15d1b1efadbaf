"""
Main URL Configuration for the marketplace administration backend
"""
from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static
from rest_framework_simplejwt.views import (
    TokenObtainPairView,
    TokenRefreshView,
)

urlpatterns = [
    # Admin
    path('admin/', admin.site.urls),

    # API Authentication
    path('api/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),

    # API URLs
    path('api/users/', include('users.api_urls')),
    path('api/restaurants/', include('restaurants.api_urls')),
    path('api/drivers/', include('delivery.api_urls')),
    path('api/credit/', include('credit.api_urls')),
    path('api/orders/', include('orders.api_urls')),
    path('api/platform-admin/', include('platform_admin.urls')),
]

# Serve media files in development
if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)

# Custom admin site headers
admin.site.site_header = 'Marketplace Admin'
admin.site.site_title = 'Marketplace Admin Portal'
admin.site.index_title = 'Marketplace Administration'
