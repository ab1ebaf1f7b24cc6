from rest_framework import serializers
from .models import AuditLog
from .settings_service import SETTING_KEYS


class AuditLogSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='user.username', read_only=True, default=None)

    class Meta:
        model = AuditLog
        fields = ['id', 'username', 'action', 'model_name', 'object_id', 'object_name',
                  'changes', 'ip_address', 'created_at']


class SettingUpdateSerializer(serializers.Serializer):
    """Value of one settings group; only the group's known fields are kept"""
    value = serializers.DictField()

    def validate_value(self, value):
        key = self.context.get('key')
        allowed = SETTING_KEYS.get(key)
        if allowed is None:
            raise serializers.ValidationError(f"Unknown setting key: {key}")
        unknown = sorted(set(value) - set(allowed))
        if unknown:
            raise serializers.ValidationError(f"Unknown fields for {key}: {', '.join(unknown)}")
        if key == 'appearance' and 'theme' in value and value['theme'] not in ('light', 'dark', 'system'):
            raise serializers.ValidationError("theme must be one of: light, dark, system")
        return value


class BrandingSerializer(serializers.Serializer):
    logo_url = serializers.CharField()
    favicon_url = serializers.CharField(allow_null=True, required=False)
    is_default = serializers.BooleanField()
