"""
Bookings are read through the `admin-get-bookings` edge function, which runs
with the service role and so is not subject to row-level security.
"""
import logging

from treksite.core.hosted_backend import get_client
from treksite.core.retry import retry_call_with_settings

logger = logging.getLogger(__name__)

ADMIN_BOOKINGS_FUNCTION = 'admin-get-bookings'

BOOKING_STATUSES = ('Pending', 'Confirmed', 'Cancelled')
PAYMENT_STATUSES = ('Not Paid', 'Deposit Paid', 'Paid in Full', 'Refunded')


class BookingNotFound(Exception):
    pass


def enrich_booking(booking):
    """Backfill guest_count from the traveler list when the row has none"""
    if booking.get('guest_count') is not None:
        return booking
    travelers = booking.get('booking_travelers') or []
    return {**booking, 'guest_count': len(travelers)}


def get_all_bookings(client=None):
    client = client or get_client()
    response = retry_call_with_settings(
        lambda: client.invoke_function(ADMIN_BOOKINGS_FUNCTION, method='GET')
    )
    bookings = (response or {}).get('data') or []
    return [enrich_booking(booking) for booking in bookings]


def get_booking_by_id(booking_id, client=None):
    """Look a booking up in the full list (the edge function has no single-row read)"""
    for booking in get_all_bookings(client):
        if str(booking.get('id')) == str(booking_id):
            return booking
    raise BookingNotFound(f"Booking not found: {booking_id}")
