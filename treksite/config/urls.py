"""
URL configuration for the trek site project.

All API routes are versioned under /api/v1/; the Django admin hosts the
audit log.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Trek Site Admin Panel"
admin.site.site_title = "Trek Site Admin Portal"
admin.site.index_title = "Welcome to the Trek Site Admin Portal"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('treksite.core.urls')),
    path('api/v1/', include('treksite.tours.urls')),
    path('api/v1/', include('treksite.bookings.urls')),
]
