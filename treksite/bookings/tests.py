"""
Test suite for the bookings module
Tests: booking enrichment, the admin bookings function reads and the
admin booking endpoints
"""
from unittest import mock

from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework import status
from rest_framework.test import APIClient

from treksite.core.hosted_backend import HostedBackendError
from treksite.core.models import AuditLog
from treksite.core.test_utils import AuthenticatedAPIClient, FakeHostedBackend, TestDataFactory
from .services import (
    ADMIN_BOOKINGS_FUNCTION,
    BookingNotFound,
    enrich_booking,
    get_all_bookings,
    get_booking_by_id,
)


class EnrichBookingTests(SimpleTestCase):

    def test_guest_count_from_travelers(self):
        booking = TestDataFactory.booking_row(travelers=3)
        self.assertEqual(enrich_booking(booking)['guest_count'], 3)
        self.assertNotIn('guest_count', booking)

    def test_existing_guest_count_is_kept(self):
        booking = TestDataFactory.booking_row(travelers=1, guest_count=4)
        self.assertEqual(enrich_booking(booking)['guest_count'], 4)

    def test_no_travelers(self):
        booking = TestDataFactory.booking_row(booking_travelers=None)
        self.assertEqual(enrich_booking(booking)['guest_count'], 0)


@mock.patch('treksite.core.retry.time.sleep')
class BookingServiceTests(SimpleTestCase):
    """Test reads through the admin bookings function"""

    def setUp(self):
        self.first = TestDataFactory.booking_row(travelers=2)
        self.second = TestDataFactory.booking_row(travelers=1, status='Confirmed', payment_status='Paid in Full')
        self.backend = FakeHostedBackend(functions={
            ADMIN_BOOKINGS_FUNCTION: {'data': [self.first, self.second]},
        })

    def test_get_all_bookings(self, sleep):
        bookings = get_all_bookings(self.backend)
        self.assertEqual([b['id'] for b in bookings], [self.first['id'], self.second['id']])
        self.assertEqual(bookings[0]['guest_count'], 2)
        self.assertEqual(self.backend.calls[0], ('invoke_function', ADMIN_BOOKINGS_FUNCTION, 'GET', None))

    def test_empty_response(self, sleep):
        self.backend.functions[ADMIN_BOOKINGS_FUNCTION] = {'data': None}
        self.assertEqual(get_all_bookings(self.backend), [])

    def test_read_is_retried(self, sleep):
        self.backend.fail_next(HostedBackendError('Bad Gateway', status=502))
        self.assertEqual(len(get_all_bookings(self.backend)), 2)
        self.assertEqual(self.backend.count('invoke_function'), 2)

    def test_missing_function_is_not_retried(self, sleep):
        backend = FakeHostedBackend()
        with self.assertRaises(HostedBackendError) as ctx:
            get_all_bookings(backend)
        self.assertEqual(ctx.exception.status, 404)
        self.assertEqual(backend.count('invoke_function'), 1)

    def test_get_booking_by_id(self, sleep):
        booking = get_booking_by_id(self.second['id'], self.backend)
        self.assertEqual(booking['status'], 'Confirmed')

    def test_booking_not_found(self, sleep):
        with self.assertRaises(BookingNotFound):
            get_booking_by_id('missing-id', self.backend)


@override_settings(RETRY_MAX_RETRIES=0)
class BookingViewTests(TestCase):
    """Test the admin booking endpoints"""

    def setUp(self):
        self.pending = TestDataFactory.booking_row(travelers=2)
        self.confirmed = TestDataFactory.booking_row(status='Confirmed', payment_status='Deposit Paid')
        self.backend = FakeHostedBackend(functions={
            ADMIN_BOOKINGS_FUNCTION: {'data': [self.pending, self.confirmed]},
        })
        patcher = mock.patch('treksite.bookings.services.get_client', return_value=self.backend)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_requires_authentication(self):
        response = APIClient().get('/api/v1/admin/bookings/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_requires_admin(self):
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())
        response = client.get('/api/v1/admin/bookings/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_bookings(self):
        response = self.client.get('/api/v1/admin/bookings/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)
        self.assertEqual(response.data[0]['guest_count'], 2)

    def test_filter_by_status(self):
        response = self.client.get('/api/v1/admin/bookings/', {'status': 'Confirmed'})
        self.assertEqual([b['id'] for b in response.data], [self.confirmed['id']])

    def test_filter_by_payment_status(self):
        response = self.client.get('/api/v1/admin/bookings/', {'payment_status': 'Not Paid'})
        self.assertEqual([b['id'] for b in response.data], [self.pending['id']])

    def test_unknown_status_filter(self):
        response = self.client.get('/api/v1/admin/bookings/', {'status': 'Archived'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.backend.calls, [])

    def test_unknown_payment_status_filter(self):
        response = self.client.get('/api/v1/admin/bookings/', {'payment_status': 'Partly'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_backend_failure(self):
        self.backend.fail_next(HostedBackendError('Internal Server Error', status=500))
        response = self.client.get('/api/v1/admin/bookings/')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(response.data['error'], 'Internal Server Error')

    def test_booking_detail(self):
        response = self.client.get(f"/api/v1/admin/bookings/{self.confirmed['id']}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['payment_status'], 'Deposit Paid')

        log = AuditLog.objects.get(action='booking_view')
        self.assertEqual(log.object_id, self.confirmed['id'])
        self.assertEqual(log.model_name, 'Booking')
        self.assertEqual(log.user, self.admin)

    def test_booking_detail_not_found(self):
        response = self.client.get('/api/v1/admin/bookings/missing-id/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(AuditLog.objects.exists())
