from django.urls import path
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from .views import site_branding, setting_list, setting_update, audit_log_list

urlpatterns = [
    # Auth endpoints (admin back office)
    path('auth/login/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', TokenRefreshView.as_view(), name='token_refresh'),

    # Public branding
    path('branding/', site_branding, name='site-branding'),

    # Setting endpoints
    path('settings/', setting_list, name='setting-list'),
    path('settings/<str:key>/', setting_update, name='setting-update'),

    # AuditLog endpoints
    path('audit-logs/', audit_log_list, name='audit-log-list'),
]
