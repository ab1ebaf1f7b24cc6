"""
Test suite for the tours module
Tests: display validation, region counts, tour serializers, tour service
and the public/admin tour endpoints
"""
from datetime import timedelta
from unittest import mock

from django.core.cache import cache
from django.test import SimpleTestCase, TestCase, override_settings
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from treksite.core.hosted_backend import HostedBackendError, eq
from treksite.core.models import AuditLog
from treksite.core.test_utils import AuthenticatedAPIClient, FakeHostedBackend, TestDataFactory
from .serializers import DepartureSerializer, RegionSerializer, TourSerializer
from .services import (
    TourNotFound,
    clean_tour_payload,
    create_tour,
    get_region_tour_counts,
    get_tour_by_id,
    get_tour_by_slug,
    get_tours_by_region,
    update_tour,
)
from .validation import compute_region_counts, sort_region_counts, validate_tour_for_display


def valid_tour_data(**overrides):
    data = {
        'name': 'Everest Base Camp Trek',
        'url_slug': 'everest-base-camp-trek',
        'price': 1450,
        'duration': 14,
        'difficulty': 'Moderate',
        'status': 'Draft',
        'region': 'Everest',
        'country': 'Nepal',
    }
    data.update(overrides)
    return data


class TourDisplayValidationTests(SimpleTestCase):
    """Test validate_tour_for_display"""

    def test_complete_tour_is_valid(self):
        result = validate_tour_for_display(TestDataFactory.tour_row())
        self.assertTrue(result['is_valid'])
        self.assertEqual(result['missing_fields'], [])
        self.assertEqual(result['warnings'], [])

    def test_missing_tour(self):
        result = validate_tour_for_display(None)
        self.assertFalse(result['is_valid'])
        self.assertEqual(result['missing_fields'], ['tour'])

    def test_missing_required_fields(self):
        tour = TestDataFactory.tour_row(price=None, url_slug='  ')
        result = validate_tour_for_display(tour)
        self.assertFalse(result['is_valid'])
        self.assertEqual(result['missing_fields'], ['url_slug', 'price'])

    def test_zero_price_is_not_missing(self):
        result = validate_tour_for_display(TestDataFactory.tour_row(price=0))
        self.assertTrue(result['is_valid'])

    def test_published_tour_without_description_warns(self):
        tour = TestDataFactory.tour_row(description='', country=None)
        result = validate_tour_for_display(tour)
        self.assertTrue(result['is_valid'])
        self.assertIn('Published tours should include a description', result['warnings'])
        self.assertIn('Published tours should include a country', result['warnings'])

    def test_draft_tour_without_description_does_not_warn(self):
        tour = TestDataFactory.tour_row(status='Draft', description='')
        self.assertEqual(validate_tour_for_display(tour)['warnings'], [])

    def test_non_list_content_warns(self):
        tour = TestDataFactory.tour_row(itineraries=None, group_discounts='10%')
        warnings = validate_tour_for_display(tour)['warnings']
        self.assertIn('Itineraries should be an array', warnings)
        self.assertIn('Group discounts should be an array', warnings)


class RegionCountTests(SimpleTestCase):
    """Test region grouping and sorting"""

    def test_compute_region_counts(self):
        rows = [
            {'id': 1, 'region': 'Everest'},
            {'id': 2, 'region': 'Everest '},
            {'id': 3, 'region': 'Annapurna'},
            {'id': 4, 'region': ''},
            {'id': 5, 'region': None},
            {'id': 6},
        ]
        self.assertEqual(compute_region_counts(rows), {'Everest': 2, 'Annapurna': 1})

    def test_sort_by_name_ignores_case(self):
        counts = {'langtang': 1, 'Everest': 5, 'Annapurna': 3}
        self.assertEqual(
            [item['region'] for item in sort_region_counts(counts)],
            ['Annapurna', 'Everest', 'langtang'],
        )

    def test_sort_by_count(self):
        counts = {'Langtang': 3, 'Everest': 5, 'Annapurna': 3}
        self.assertEqual(sort_region_counts(counts, 'count'), [
            {'region': 'Everest', 'count': 5},
            {'region': 'Annapurna', 'count': 3},
            {'region': 'Langtang', 'count': 3},
        ])

    def test_empty(self):
        self.assertEqual(sort_region_counts({}), [])


class TourSerializerTests(SimpleTestCase):
    """Test the admin tour editor validation"""

    def test_valid_tour(self):
        serializer = TourSerializer(data=valid_tour_data())
        self.assertTrue(serializer.is_valid(), serializer.errors)

    def test_short_name(self):
        serializer = TourSerializer(data=valid_tour_data(name='EBC'))
        self.assertFalse(serializer.is_valid())
        self.assertEqual(str(serializer.errors['name'][0]), 'Title must be at least 5 characters')

    def test_slug_format(self):
        serializer = TourSerializer(data=valid_tour_data(url_slug='Everest Base Camp'))
        self.assertFalse(serializer.is_valid())
        self.assertIn('url_slug', serializer.errors)

    def test_negative_price(self):
        serializer = TourSerializer(data=valid_tour_data(price=-1))
        self.assertFalse(serializer.is_valid())
        self.assertEqual(str(serializer.errors['price'][0]), 'Price cannot be negative')

    def test_price_upper_bound(self):
        serializer = TourSerializer(data=valid_tour_data(price=1000000))
        self.assertFalse(serializer.is_valid())
        self.assertIn('price', serializer.errors)

    def test_duration_range(self):
        for duration in (0, 366):
            serializer = TourSerializer(data=valid_tour_data(duration=duration))
            self.assertFalse(serializer.is_valid())
            self.assertEqual(str(serializer.errors['duration'][0]), 'Duration must be between 1 and 365 days')

    def test_unknown_difficulty(self):
        serializer = TourSerializer(data=valid_tour_data(difficulty='Extreme'))
        self.assertFalse(serializer.is_valid())
        self.assertIn('difficulty', serializer.errors)

    def test_partial_update(self):
        serializer = TourSerializer(data={'status': 'Published'}, partial=True)
        self.assertTrue(serializer.is_valid(), serializer.errors)
        self.assertEqual(dict(serializer.validated_data), {'status': 'Published'})


class DepartureSerializerTests(SimpleTestCase):
    """Test departure date validation"""

    def setUp(self):
        self.today = timezone.now().date()

    def departure(self, start_offset, end_offset):
        return {
            'start_date': (self.today + timedelta(days=start_offset)).isoformat(),
            'end_date': (self.today + timedelta(days=end_offset)).isoformat(),
            'price': 1200,
            'capacity': 12,
        }

    def test_valid_departure(self):
        serializer = DepartureSerializer(data=self.departure(30, 44))
        self.assertTrue(serializer.is_valid(), serializer.errors)

    def test_start_date_must_be_in_future(self):
        serializer = DepartureSerializer(data=self.departure(0, 10))
        self.assertFalse(serializer.is_valid())
        self.assertIn('start_date', serializer.errors)

    def test_end_before_start(self):
        serializer = DepartureSerializer(data=self.departure(30, 20))
        self.assertFalse(serializer.is_valid())
        self.assertIn('end_date', serializer.errors)


class RegionSerializerTests(SimpleTestCase):

    def test_short_name(self):
        serializer = RegionSerializer(data={'name': 'Ab', 'status': 'Draft'})
        self.assertFalse(serializer.is_valid())
        self.assertEqual(str(serializer.errors['name'][0]), 'Region name must be at least 3 characters')

    def test_zoom_level_range(self):
        serializer = RegionSerializer(data={'name': 'Everest', 'status': 'Published', 'zoom_level': 21})
        self.assertFalse(serializer.is_valid())
        self.assertIn('zoom_level', serializer.errors)


@mock.patch('treksite.core.retry.time.sleep')
class TourServiceTests(TestCase):
    """Test tour reads and writes against an in-memory backend"""

    def setUp(self):
        cache.clear()
        self.published = TestDataFactory.tour_row(name='Everest Base Camp')
        self.draft = TestDataFactory.tour_row(name='Gokyo Lakes', status='Draft')
        self.other = TestDataFactory.tour_row(name='Annapurna Circuit', region='Annapurna')
        self.backend = FakeHostedBackend(tables={'tours': [self.published, self.draft, self.other]})
        patcher = mock.patch('treksite.tours.services.get_client', return_value=self.backend)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_clean_tour_payload(self, sleep):
        payload = clean_tour_payload({'name': 'Everest', 'price_includes': ['Permits'], 'faqs': []})
        self.assertEqual(payload, {'name': 'Everest', 'faqs': []})

    def test_get_tour_by_id(self, sleep):
        tour = get_tour_by_id(self.published['id'])
        self.assertEqual(tour['name'], 'Everest Base Camp')
        self.assertEqual(self.backend.calls[0][3], [eq('id', self.published['id'])])
        self.assertEqual(self.backend.calls[0][5], 1)

    def test_get_tour_by_slug(self, sleep):
        tour = get_tour_by_slug('gokyo-lakes')
        self.assertEqual(tour['id'], self.draft['id'])

    def test_tour_not_found(self, sleep):
        with self.assertRaises(TourNotFound):
            get_tour_by_slug('no-such-trek')

    def test_read_is_retried(self, sleep):
        self.backend.fail_next(HostedBackendError('Service Unavailable', status=503))
        tour = get_tour_by_id(self.published['id'])
        self.assertEqual(tour['id'], self.published['id'])
        self.assertEqual(self.backend.count('select'), 2)
        sleep.assert_called_once()

    def test_client_error_is_not_retried(self, sleep):
        self.backend.fail_next(HostedBackendError('Bad Request', status=400))
        with self.assertRaises(HostedBackendError):
            get_tour_by_id(self.published['id'])
        self.assertEqual(self.backend.count('select'), 1)
        sleep.assert_not_called()

    def test_get_tours_by_region(self, sleep):
        tours = get_tours_by_region('Everest')
        self.assertEqual({t['id'] for t in tours}, {self.published['id'], self.draft['id']})
        self.assertEqual(self.backend.calls[0][4], 'created_at.desc')

    def test_get_tours_by_region_with_status(self, sleep):
        tours = get_tours_by_region('Everest', status='Published')
        self.assertEqual([t['id'] for t in tours], [self.published['id']])

    def test_get_tours_by_empty_region(self, sleep):
        self.assertEqual(get_tours_by_region(''), [])
        self.assertEqual(self.backend.calls, [])

    def test_region_counts_are_cached(self, sleep):
        first = get_region_tour_counts()
        second = get_region_tour_counts()
        self.assertEqual(first, [
            {'region': 'Annapurna', 'count': 1},
            {'region': 'Everest', 'count': 2},
        ])
        self.assertEqual(first, second)
        self.assertEqual(self.backend.count('select'), 1)
        self.assertEqual(self.backend.calls[0][2], 'id,region')

    def test_create_tour(self, sleep):
        tour = create_tour({**valid_tour_data(), 'price_includes': ['Permits']})
        self.assertIsNotNone(tour['id'])
        payload = self.backend.calls[0][2]
        self.assertNotIn('price_includes', payload)
        self.assertNotIn('published_at', payload)

    def test_create_published_tour_sets_published_at(self, sleep):
        tour = create_tour(valid_tour_data(status='Published'))
        self.assertTrue(tour['published_at'])

    def test_create_invalidates_region_counts(self, sleep):
        get_region_tour_counts()
        create_tour(valid_tour_data(region='Langtang'))
        counts = get_region_tour_counts()
        self.assertIn({'region': 'Langtang', 'count': 1}, counts)
        self.assertEqual(self.backend.count('select'), 2)

    def test_write_is_not_retried(self, sleep):
        self.backend.fail_next(HostedBackendError('Service Unavailable', status=503))
        with self.assertRaises(HostedBackendError):
            create_tour(valid_tour_data())
        self.assertEqual(self.backend.count('insert'), 1)
        sleep.assert_not_called()

    def test_publish_sets_published_at(self, sleep):
        tour = update_tour(self.draft['id'], {'status': 'Published'})
        self.assertEqual(tour['status'], 'Published')
        self.assertTrue(tour['published_at'])
        self.assertTrue(tour['updated_at'])

    def test_unpublish_clears_published_at(self, sleep):
        update_tour(self.published['id'], {'status': 'Published'})
        tour = update_tour(self.published['id'], {'status': 'Draft'})
        self.assertIsNone(tour['published_at'])

    def test_update_keeps_published_at_without_status(self, sleep):
        update_tour(self.published['id'], {'price': 1600})
        payload = self.backend.calls[0][3]
        self.assertNotIn('published_at', payload)
        self.assertEqual(payload['price'], 1600)

    def test_update_missing_tour(self, sleep):
        with self.assertRaises(TourNotFound):
            update_tour('missing-id', {'price': 10})


@override_settings(RETRY_MAX_RETRIES=0)
class PublicTourViewTests(TestCase):
    """Test the public tour endpoints"""

    def setUp(self):
        cache.clear()
        self.published = TestDataFactory.tour_row(name='Everest Base Camp')
        self.draft = TestDataFactory.tour_row(name='Gokyo Lakes', status='Draft')
        self.other = TestDataFactory.tour_row(name='Annapurna Circuit', region='Annapurna')
        self.backend = FakeHostedBackend(tables={'tours': [self.published, self.draft, self.other]})
        patcher = mock.patch('treksite.tours.services.get_client', return_value=self.backend)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.client = APIClient()

    def test_region_counts(self):
        response = self.client.get('/api/v1/regions/counts/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0], {'region': 'Annapurna', 'count': 1})

    def test_region_counts_sorted_by_count(self):
        response = self.client.get('/api/v1/regions/counts/', {'sort': 'count'})
        self.assertEqual(response.data[0], {'region': 'Everest', 'count': 2})

    def test_region_counts_unknown_sort(self):
        response = self.client.get('/api/v1/regions/counts/', {'sort': 'price'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_region_counts_backend_failure(self):
        self.backend.fail_next(HostedBackendError('Service Unavailable', status=503))
        response = self.client.get('/api/v1/regions/counts/')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)

    def test_region_tours_only_published(self):
        response = self.client.get('/api/v1/regions/Everest/tours/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([t['id'] for t in response.data], [self.published['id']])

    def test_tour_detail(self):
        response = self.client.get('/api/v1/tours/everest-base-camp/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['tour']['id'], self.published['id'])
        self.assertTrue(response.data['validation']['is_valid'])

    def test_draft_tour_is_hidden(self):
        response = self.client.get('/api/v1/tours/gokyo-lakes/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'TOUR_NOT_FOUND')

    def test_unknown_tour(self):
        response = self.client.get('/api/v1/tours/no-such-trek/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['title'], 'Tour Not Found')

    def test_tour_detail_backend_failure(self):
        self.backend.fail_next(HostedBackendError('Service Unavailable', status=503))
        response = self.client.get('/api/v1/tours/everest-base-camp/')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(response.data['code'], 'SERVICE_UNAVAILABLE')

    def test_tour_detail_network_failure(self):
        self.backend.fail_next(HostedBackendError('Network error calling hosted backend: timed out'))
        response = self.client.get('/api/v1/tours/everest-base-camp/')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(response.data['code'], 'NETWORK_ERROR')


@override_settings(RETRY_MAX_RETRIES=0)
class AdminTourViewTests(TestCase):
    """Test the admin tour editor endpoints"""

    def setUp(self):
        cache.clear()
        self.draft = TestDataFactory.tour_row(name='Gokyo Lakes', status='Draft')
        self.backend = FakeHostedBackend(tables={'tours': [self.draft]})
        patcher = mock.patch('treksite.tours.services.get_client', return_value=self.backend)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_requires_authentication(self):
        response = APIClient().post('/api/v1/admin/tours/', valid_tour_data(), format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_requires_admin(self):
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())
        response = client.get(f"/api/v1/admin/tours/{self.draft['id']}/")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_tour(self):
        response = self.client.post('/api/v1/admin/tours/', valid_tour_data(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['url_slug'], 'everest-base-camp-trek')

        log = AuditLog.objects.get(action='tour_create')
        self.assertEqual(log.object_id, response.data['id'])
        self.assertEqual(log.object_name, 'Everest Base Camp Trek')
        self.assertEqual(log.user, self.admin)

    def test_create_invalid_tour(self):
        response = self.client.post('/api/v1/admin/tours/', valid_tour_data(duration=0), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('duration', response.data)
        self.assertEqual(self.backend.count('insert'), 0)

    def test_create_backend_rejection(self):
        self.backend.fail_next(HostedBackendError('duplicate key value', status=409, code='23505'))
        response = self.client.post('/api/v1/admin/tours/', valid_tour_data(), format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], '23505')
        self.assertFalse(AuditLog.objects.exists())

    def test_get_tour(self):
        response = self.client.get(f"/api/v1/admin/tours/{self.draft['id']}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['tour']['name'], 'Gokyo Lakes')

    def test_get_missing_tour(self):
        response = self.client.get('/api/v1/admin/tours/missing-id/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_publish_tour(self):
        response = self.client.patch(f"/api/v1/admin/tours/{self.draft['id']}/",
                                     {'status': 'Published'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'Published')
        self.assertTrue(response.data['published_at'])
        self.assertTrue(AuditLog.objects.filter(action='tour_publish', object_id=self.draft['id']).exists())

    def test_unpublish_tour(self):
        self.client.patch(f"/api/v1/admin/tours/{self.draft['id']}/", {'status': 'Published'}, format='json')
        response = self.client.patch(f"/api/v1/admin/tours/{self.draft['id']}/",
                                     {'status': 'Draft'}, format='json')
        self.assertIsNone(response.data['published_at'])
        self.assertTrue(AuditLog.objects.filter(action='tour_unpublish').exists())

    def test_update_pricing(self):
        response = self.client.patch(f"/api/v1/admin/tours/{self.draft['id']}/",
                                     {'price': 1750, 'group_discounts': [{'min_size': 4, 'percent': 10}]},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['price'], 1750)
        self.assertTrue(AuditLog.objects.filter(action='tour_update').exists())

    def test_update_invalid_value(self):
        response = self.client.patch(f"/api/v1/admin/tours/{self.draft['id']}/", {'price': -5}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.backend.count('update'), 0)

    def test_update_missing_tour(self):
        response = self.client.patch('/api/v1/admin/tours/missing-id/', {'price': 10}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


@override_settings(RETRY_MAX_RETRIES=0)
class TourWriteSessionTests(TestCase):
    """Region cache invalidation leaves visitor sessions alone"""

    def setUp(self):
        cache.clear()
        self.settings_backend = FakeHostedBackend(tables={'settings': [
            {'key': 'branding', 'value': {'logo_url': 'https://cdn.example.com/logo.png'}},
        ]})
        self.tours_backend = FakeHostedBackend(tables={'tours': []})
        for target, backend in (('treksite.core.settings_service.get_client', self.settings_backend),
                                ('treksite.tours.services.get_client', self.tours_backend)):
            patcher = mock.patch(target, return_value=backend)
            patcher.start()
            self.addCleanup(patcher.stop)
        self.client = APIClient()

    def test_branding_stays_cached_after_tour_write(self):
        self.client.get('/api/v1/branding/')
        self.client.get('/api/v1/branding/')
        self.assertEqual(self.settings_backend.count('select'), 1)

        create_tour(valid_tour_data())
        update_tour(self.tours_backend.tables['tours'][0]['id'], {'status': 'Published'})

        response = self.client.get('/api/v1/branding/')
        self.assertEqual(response.data['logo_url'], 'https://cdn.example.com/logo.png')
        self.assertEqual(self.settings_backend.count('select'), 1)

    def test_tour_write_still_refreshes_region_counts(self):
        get_region_tour_counts()
        create_tour(valid_tour_data())
        self.assertEqual(get_region_tour_counts(), [{'region': 'Everest', 'count': 1}])
        self.assertEqual(self.tours_backend.count('select'), 2)
