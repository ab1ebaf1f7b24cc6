"""Site settings stored in the hosted backend's `settings` table (one row per group)"""
import logging

from django.utils import timezone

from .hosted_backend import get_client
from .retry import retry_call_with_settings

logger = logging.getLogger(__name__)

SETTINGS_TABLE = 'settings'

# Setting groups and the fields each one carries
SETTING_KEYS = {
    'site_config': ('title', 'email'),
    'branding': ('logo_url', 'favicon_url'),
    'notifications': ('email_bookings', 'email_contact'),
    'appearance': ('theme', 'primary_color'),
}


def get_all_settings(client=None) -> dict:
    """Fetch every settings row and group it as {key: value}"""
    client = client or get_client()
    rows = retry_call_with_settings(lambda: client.select(SETTINGS_TABLE, columns='key,value'))
    return {row['key']: row['value'] for row in rows}


def get_branding(client=None) -> dict:
    """Branding group, or {} when the row is missing or not an object"""
    value = get_all_settings(client).get('branding')
    return value if isinstance(value, dict) else {}


def update_setting(key: str, value, client=None):
    """Upsert one settings group. Writes are not retried."""
    if key not in SETTING_KEYS:
        raise ValueError(f"Unknown setting key: {key}")

    client = client or get_client()
    rows = client.upsert(SETTINGS_TABLE, {
        'key': key,
        'value': value,
        'updated_at': timezone.now().isoformat(),
    })
    logger.info(f"Updated setting: {key}")
    return rows[0] if rows else {'key': key, 'value': value}
