from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response

from treksite.core.hosted_backend import HostedBackendError
from treksite.core.utils import backend_error_response, create_audit_log
from .services import (
    BOOKING_STATUSES,
    PAYMENT_STATUSES,
    BookingNotFound,
    get_all_bookings,
    get_booking_by_id,
)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def booking_list(request):
    """List bookings, optionally filtered by ?status= and ?payment_status="""
    status_filter = request.query_params.get('status', None)
    if status_filter and status_filter not in BOOKING_STATUSES:
        return Response({'error': f'Unknown booking status: {status_filter}'}, status=status.HTTP_400_BAD_REQUEST)
    payment_filter = request.query_params.get('payment_status', None)
    if payment_filter and payment_filter not in PAYMENT_STATUSES:
        return Response({'error': f'Unknown payment status: {payment_filter}'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        bookings = get_all_bookings()
    except HostedBackendError as e:
        return backend_error_response(e, 'Failed to load bookings')

    if status_filter:
        bookings = [b for b in bookings if b.get('status') == status_filter]
    if payment_filter:
        bookings = [b for b in bookings if b.get('payment_status') == payment_filter]
    return Response(bookings)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def booking_detail(request, booking_id):
    try:
        booking = get_booking_by_id(booking_id)
    except BookingNotFound as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
    except HostedBackendError as e:
        return backend_error_response(e, 'Failed to load booking')

    create_audit_log(
        request=request,
        action='booking_view',
        model_name='Booking',
        object_id=booking_id,
    )
    return Response(booking)
