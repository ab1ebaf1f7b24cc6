import logging

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.utils.dateparse import parse_date
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAdminUser, IsAuthenticated
from rest_framework.response import Response

from .branding_cache import BrandingCache, get_cached_branding
from .hosted_backend import HostedBackendError
from .models import AuditLog
from .serializers import AuditLogSerializer, BrandingSerializer, SettingUpdateSerializer
from .settings_service import get_all_settings, get_branding, update_setting
from .utils import backend_error_response, create_audit_log

logger = logging.getLogger(__name__)


@api_view(['GET'])
@permission_classes([AllowAny])
def site_branding(request):
    """
    Branding for the public site header.
    Served from the visitor's session for an hour; falls back to the default logo.
    """
    default_logo = settings.DEFAULT_LOGO_URL
    try:
        branding = get_cached_branding(
            request.session,
            get_branding,
            duration=settings.BRANDING_CACHE_DURATION_MS,
        )
    except (HostedBackendError, ImproperlyConfigured) as e:
        logger.error(f"Failed to load logo settings: {str(e)}")
        branding = {}

    logo_url = branding.get('logo_url')
    serializer = BrandingSerializer({
        'logo_url': logo_url or default_logo,
        'favicon_url': branding.get('favicon_url'),
        'is_default': not logo_url,
    })
    return Response(serializer.data)


# Setting views
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def setting_list(request):
    """All settings groups keyed by name"""
    try:
        return Response(get_all_settings())
    except HostedBackendError as e:
        return backend_error_response(e, 'Failed to load settings')


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdminUser])
def setting_update(request, key):
    """Replace one settings group"""
    serializer = SettingUpdateSerializer(data=request.data, context={'key': key})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    value = serializer.validated_data['value']
    try:
        row = update_setting(key, value)
    except HostedBackendError as e:
        return backend_error_response(e, 'Failed to update setting')

    if key == 'branding':
        BrandingCache(request.session).invalidate()

    create_audit_log(
        request=request,
        action='setting_update',
        model_name='Setting',
        object_id=key,
        object_name=key,
        changes={'value': value},
    )
    return Response(row)


# AuditLog views (read-only)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def audit_log_list(request):
    """List audit logs with filtering"""
    queryset = AuditLog.objects.select_related('user')

    action_filter = request.query_params.get('action', None)
    if action_filter:
        queryset = queryset.filter(action=action_filter)

    model_filter = request.query_params.get('model', None)
    if model_filter:
        queryset = queryset.filter(model_name=model_filter)

    for param, lookup in (('date_from', 'created_at__date__gte'), ('date_to', 'created_at__date__lte')):
        raw_date = request.query_params.get(param, None)
        if not raw_date:
            continue
        try:
            parsed = parse_date(raw_date)
        except ValueError:
            parsed = None
        if parsed is None:
            return Response({'error': f'{param} must be a date in YYYY-MM-DD format'},
                            status=status.HTTP_400_BAD_REQUEST)
        queryset = queryset.filter(**{lookup: parsed})

    queryset = queryset.order_by('-created_at')
    serializer = AuditLogSerializer(queryset, many=True)
    return Response(serializer.data)
