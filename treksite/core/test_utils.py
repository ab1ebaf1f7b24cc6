"""
Test utilities and factories for creating test data
"""
import copy
import random
import string
import uuid

from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from treksite.core.hosted_backend import HostedBackendError

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_admin(username=None):
        """Create a staff user allowed into the admin API"""
        return TestDataFactory.create_user(username=username, is_staff=True)

    @staticmethod
    def tour_row(name=None, region='Everest', status='Published', **overrides):
        """Tour row as the hosted backend returns it"""
        if not name:
            name = f'Trek {TestDataFactory.random_string(6)}'
        row = {
            'id': str(uuid.uuid4()),
            'name': name,
            'url_slug': name.lower().replace(' ', '-'),
            'description': f'{name} through the high Himalaya',
            'status': status,
            'price': 1500,
            'currency': 'USD',
            'duration': 14,
            'difficulty': 'Moderate',
            'region': region,
            'country': 'Nepal',
            'itineraries': [],
            'tour_highlights': [],
            'seasonal_prices': [],
            'group_discounts': [],
            'created_at': '2026-01-01T00:00:00+00:00',
        }
        row.update(overrides)
        return row

    @staticmethod
    def booking_row(tour_id=None, travelers=1, **overrides):
        """Booking row as the admin bookings function returns it"""
        booking_id = str(uuid.uuid4())
        row = {
            'id': booking_id,
            'tour_id': tour_id or str(uuid.uuid4()),
            'total_price': 3000,
            'status': 'Pending',
            'payment_status': 'Not Paid',
            'booking_travelers': [
                {'id': str(uuid.uuid4()), 'booking_id': booking_id, 'name': f'Traveler {i}', 'is_primary': i == 0}
                for i in range(travelers)
            ],
        }
        row.update(overrides)
        return row


class FakeHostedBackend:
    """
    In-memory stand-in for HostedBackendClient.

    `tables` maps table name -> list of row dicts, `functions` maps edge
    function name -> response body. Errors queued with fail_next() are
    raised by the next calls, one per call.
    """

    def __init__(self, tables=None, functions=None):
        self.tables = {name: [dict(row) for row in rows] for name, rows in (tables or {}).items()}
        self.functions = functions or {}
        self.calls = []
        self._failures = []

    def fail_next(self, *errors):
        self._failures.extend(errors)

    def _record(self, *call):
        self.calls.append(call)
        if self._failures:
            raise self._failures.pop(0)

    @staticmethod
    def _matches(row, filters):
        for column, condition in filters or []:
            op, _, value = condition.partition('.')
            if op != 'eq' or str(row.get(column)) != value:
                return False
        return True

    def select(self, table, columns='*', filters=None, order=None, limit=None):
        self._record('select', table, columns, list(filters or []), order, limit)
        rows = [copy.deepcopy(row) for row in self.tables.get(table, []) if self._matches(row, filters)]
        if columns != '*':
            wanted = [c.strip() for c in columns.split(',')]
            rows = [{c: row.get(c) for c in wanted} for row in rows]
        if limit is not None:
            rows = rows[:limit]
        return rows

    def insert(self, table, payload):
        self._record('insert', table, payload)
        row = {'id': str(uuid.uuid4()), **payload}
        self.tables.setdefault(table, []).append(row)
        return [copy.deepcopy(row)]

    def update(self, table, filters, payload):
        filters = list(filters)
        self._record('update', table, filters, payload)
        updated = []
        for row in self.tables.get(table, []):
            if self._matches(row, filters):
                row.update(payload)
                updated.append(copy.deepcopy(row))
        return updated

    def upsert(self, table, payload):
        self._record('upsert', table, payload)
        rows = self.tables.setdefault(table, [])
        for row in rows:
            if row.get('key') == payload.get('key'):
                row.update(payload)
                return [copy.deepcopy(row)]
        rows.append(dict(payload))
        return [copy.deepcopy(payload)]

    def delete(self, table, filters):
        filters = list(filters)
        self._record('delete', table, filters)
        rows = self.tables.get(table, [])
        removed = [row for row in rows if self._matches(row, filters)]
        self.tables[table] = [row for row in rows if not self._matches(row, filters)]
        return removed

    def invoke_function(self, name, method='POST', body=None):
        self._record('invoke_function', name, method, body)
        if name not in self.functions:
            raise HostedBackendError(f'Function not found: {name}', status=404)
        return copy.deepcopy(self.functions[name])

    def count(self, kind):
        return sum(1 for call in self.calls if call[0] == kind)


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
