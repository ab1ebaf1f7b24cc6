"""User-facing messages for failures while loading tours"""
from dataclasses import asdict, dataclass
from typing import Optional

from django.conf import settings


@dataclass
class UserFriendlyError:
    title: str
    message: str
    suggestion: Optional[str] = None
    code: Optional[str] = None

    def to_dict(self):
        return asdict(self)


def map_tour_load_error(error) -> UserFriendlyError:
    """Classify a tour load failure by its message (and HTTP status, when it has one)"""
    raw_message = str(error) if error is not None else ''
    raw_message = raw_message or 'Unknown error'
    lower = raw_message.lower()

    if 'not found' in lower:
        return UserFriendlyError(
            title='Tour Not Found',
            message='The tour you are trying to view does not exist or has been removed.',
            suggestion='Return to the tours list and select a different tour.',
            code='TOUR_NOT_FOUND',
        )

    if 'failed to fetch' in lower or 'network' in lower or 'err_aborted' in lower:
        if settings.DEBUG:
            suggestion = 'Check your internet connection, CORS settings, or disable ad-blockers.'
        else:
            suggestion = 'Check your internet connection and try again.'
        return UserFriendlyError(
            title='Network Connection Issue',
            message='Unable to connect to the server. The request was blocked or failed.',
            suggestion=suggestion,
            code='NETWORK_ERROR',
        )

    status = getattr(error, 'status', None) or 0
    if 'hosted backend' in lower or 'database' in lower or status >= 500:
        return UserFriendlyError(
            title='Service Unavailable',
            message='The data service is currently unavailable or returned an error.',
            suggestion='Please try again in a few moments.',
            code='SERVICE_UNAVAILABLE',
        )

    return UserFriendlyError(
        title='Failed to Load Tour',
        message=raw_message,
        suggestion='Try again or return to the tours list.',
        code='GENERIC_ERROR',
    )
