"""
Test suite for the core module
Tests: retry runner, branding cache, hosted backend client, settings service,
error mapping, credential generation, and the core API endpoints
"""
import asyncio
import json
from io import StringIO
from unittest import mock

import requests
from cryptography.exceptions import InvalidTag
from django.core.cache import cache
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import SimpleTestCase, TestCase, override_settings
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from treksite.core.branding_cache import (
    BRANDING_CACHE_DURATION,
    BRANDING_CACHE_KEY,
    BrandingCache,
    get_cached_branding,
)
from treksite.core.credentials import (
    DIGITS,
    LOWERCASE,
    SPECIAL,
    UPPERCASE,
    decrypt_credential,
    encrypt_credential,
    generate_random_string,
    generate_strong_password,
    generate_username,
    log_credential_access,
)
from treksite.core.error_utils import map_tour_load_error
from treksite.core.hosted_backend import HostedBackendClient, HostedBackendError, eq
from treksite.core.models import AuditLog
from treksite.core.retry import (
    compute_delay,
    get_error_status,
    is_retryable,
    retry_call,
    with_exponential_backoff,
)
from treksite.core.settings_service import get_all_settings, get_branding, update_setting
from treksite.core.test_utils import AuthenticatedAPIClient, FakeHostedBackend, TestDataFactory


class StatusError(Exception):
    """Error carrying an HTTP status, like HostedBackendError"""

    def __init__(self, status=None):
        super().__init__(f'status {status}')
        self.status = status


class FlakyOperation:
    """Fails with the queued errors, then returns `result`"""

    def __init__(self, errors, result='ok'):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


class AsyncFlakyOperation(FlakyOperation):
    async def __call__(self):
        return super().__call__()


def run_async(operation, **kwargs):
    return asyncio.run(with_exponential_backoff(operation, **kwargs))


class RetryClassificationTests(SimpleTestCase):
    """Test which failures are treated as transient"""

    def test_error_without_status_is_retryable(self):
        self.assertTrue(is_retryable(Exception('connection reset')))
        self.assertTrue(is_retryable(StatusError(None)))

    def test_server_errors_are_retryable(self):
        for code in (500, 502, 503, 504, 599):
            self.assertTrue(is_retryable(StatusError(code)), code)

    def test_client_errors_are_not_retryable(self):
        for code in (400, 401, 403, 404, 409, 422, 429, 499):
            self.assertFalse(is_retryable(StatusError(code)), code)

    def test_status_outside_server_range_is_not_retryable(self):
        self.assertFalse(is_retryable(StatusError(600)))
        self.assertFalse(is_retryable(StatusError(302)))

    def test_status_read_from_requests_response(self):
        response = requests.Response()
        response.status_code = 503
        error = requests.HTTPError('Service Unavailable', response=response)
        self.assertEqual(get_error_status(error), 503)
        self.assertTrue(is_retryable(error))

        response.status_code = 429
        self.assertFalse(is_retryable(error))

    def test_compute_delay_doubles_per_retry(self):
        with mock.patch('treksite.core.retry.random.uniform', return_value=0):
            self.assertEqual(compute_delay(1000, 1), 2000)
            self.assertEqual(compute_delay(1000, 2), 4000)
            self.assertEqual(compute_delay(1000, 3), 8000)

    def test_compute_delay_jitter_is_bounded(self):
        for _ in range(50):
            delay = compute_delay(1000, 1)
            self.assertGreaterEqual(delay, 2000)
            self.assertLessEqual(delay, 2100)


@mock.patch('treksite.core.retry.asyncio.sleep', new_callable=mock.AsyncMock)
class AsyncBackoffTests(SimpleTestCase):
    """Test with_exponential_backoff"""

    def test_success_on_first_attempt(self, sleep):
        operation = AsyncFlakyOperation([], result={'id': 1})
        self.assertEqual(run_async(operation), {'id': 1})
        self.assertEqual(operation.calls, 1)
        sleep.assert_not_called()

    def test_error_without_status_retried_up_to_max_retries(self, sleep):
        errors = [ConnectionError(f'failure {i}') for i in range(4)]
        last = errors[-1]
        operation = AsyncFlakyOperation(errors)

        with self.assertRaises(ConnectionError) as ctx:
            run_async(operation, max_retries=3, base_delay=1000)

        self.assertIs(ctx.exception, last)
        self.assertEqual(operation.calls, 4)
        self.assertEqual(sleep.await_count, 3)

    def test_rate_limit_is_not_retried(self, sleep):
        error = StatusError(429)
        operation = AsyncFlakyOperation([error])

        with self.assertRaises(StatusError) as ctx:
            run_async(operation)

        self.assertIs(ctx.exception, error)
        self.assertEqual(operation.calls, 1)
        sleep.assert_not_called()

    def test_client_errors_are_not_retried(self, sleep):
        for code in (400, 401, 403, 404, 499):
            operation = AsyncFlakyOperation([StatusError(code)])
            with self.assertRaises(StatusError):
                run_async(operation)
            self.assertEqual(operation.calls, 1, code)
        sleep.assert_not_called()

    def test_server_errors_schedule_exactly_max_retries_delays(self, sleep):
        operation = AsyncFlakyOperation([StatusError(500) for _ in range(10)])

        with mock.patch('treksite.core.retry.random.uniform', return_value=0):
            with self.assertRaises(StatusError):
                run_async(operation, max_retries=3, base_delay=1000)

        self.assertEqual(operation.calls, 4)
        self.assertEqual([c.args[0] for c in sleep.await_args_list], [2.0, 4.0, 8.0])

    def test_recovers_after_two_service_unavailable_errors(self, sleep):
        operation = AsyncFlakyOperation([StatusError(503), StatusError(503)], result='booked')

        with self.assertLogs('treksite.core.retry', level='WARNING') as logs:
            result = run_async(operation)

        self.assertEqual(result, 'booked')
        self.assertEqual(operation.calls, 3)
        self.assertEqual(len(logs.records), 2)
        self.assertIn('(Attempt 1/3)', logs.output[0])
        self.assertIn('(Attempt 2/3)', logs.output[1])

    def test_zero_retries_runs_once(self, sleep):
        operation = AsyncFlakyOperation([StatusError(500)])
        with self.assertRaises(StatusError):
            run_async(operation, max_retries=0)
        self.assertEqual(operation.calls, 1)
        sleep.assert_not_called()


@mock.patch('treksite.core.retry.time.sleep')
class SyncRetryTests(SimpleTestCase):
    """Test retry_call"""

    def test_returns_result_after_transient_failures(self, sleep):
        operation = FlakyOperation([StatusError(502), ConnectionError('reset')], result=[1, 2])
        self.assertEqual(retry_call(operation), [1, 2])
        self.assertEqual(operation.calls, 3)
        self.assertEqual(sleep.call_count, 2)

    def test_exhausted_retries_propagate_last_error(self, sleep):
        errors = [StatusError(500) for _ in range(3)]
        operation = FlakyOperation(errors)

        with self.assertRaises(StatusError) as ctx:
            retry_call(operation, max_retries=2, base_delay=10)

        self.assertIs(ctx.exception, errors[-1])
        self.assertEqual(sleep.call_count, 2)

    def test_non_retryable_propagates_immediately(self, sleep):
        error = HostedBackendError('Forbidden', status=403)
        operation = FlakyOperation([error])

        with self.assertRaises(HostedBackendError) as ctx:
            retry_call(operation)

        self.assertIs(ctx.exception, error)
        sleep.assert_not_called()

    def test_warning_reports_delay_and_attempt(self, sleep):
        operation = FlakyOperation([StatusError(500)])
        with mock.patch('treksite.core.retry.random.uniform', return_value=0):
            with self.assertLogs('treksite.core.retry', level='WARNING') as logs:
                retry_call(operation, max_retries=3, base_delay=1000)
        self.assertEqual(
            logs.records[0].getMessage(),
            'Request failed. Retrying in 2000ms... (Attempt 1/3)',
        )
        sleep.assert_called_once_with(2.0)


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class BrandingCacheTests(SimpleTestCase):
    """Test the session branding cache"""

    def setUp(self):
        self.store = {}
        self.clock = FakeClock()
        self.branding = {'logo_url': 'https://cdn.example.com/logo.png', 'favicon_url': 'https://cdn.example.com/favicon.ico'}
        self.fetch = mock.Mock(return_value=self.branding)

    def get(self):
        return get_cached_branding(self.store, self.fetch, clock=self.clock)

    def test_stored_layout(self):
        BrandingCache(self.store, clock=self.clock).write(self.branding)
        stored = json.loads(self.store[BRANDING_CACHE_KEY])
        self.assertEqual(stored['data'], self.branding)
        self.assertEqual(stored['timestamp'], int(self.clock.now * 1000))

    def test_read_within_ttl_returns_written_payload_without_fetch(self):
        BrandingCache(self.store, clock=self.clock).write(self.branding)
        self.clock.advance(59 * 60)

        self.assertEqual(self.get(), self.branding)
        self.fetch.assert_not_called()

    def test_miss_fetches_and_writes(self):
        self.assertEqual(self.get(), self.branding)
        self.assertEqual(self.fetch.call_count, 1)
        self.assertIn(BRANDING_CACHE_KEY, self.store)

        self.assertEqual(self.get(), self.branding)
        self.assertEqual(self.fetch.call_count, 1)

    def test_expired_entry_triggers_one_fetch_and_overwrites(self):
        BrandingCache(self.store, clock=self.clock).write({'logo_url': 'https://old/logo.png'})
        self.clock.advance(BRANDING_CACHE_DURATION / 1000)

        self.assertEqual(self.get(), self.branding)
        self.assertEqual(self.fetch.call_count, 1)
        stored = json.loads(self.store[BRANDING_CACHE_KEY])
        self.assertEqual(stored['data'], self.branding)
        self.assertEqual(stored['timestamp'], int(self.clock.now * 1000))

    def test_corrupted_entry_is_removed_and_refetched(self):
        self.store[BRANDING_CACHE_KEY] = '{"data": {"logo_url": '

        self.assertIsNone(BrandingCache(self.store, clock=self.clock).read())
        self.assertNotIn(BRANDING_CACHE_KEY, self.store)

        self.store[BRANDING_CACHE_KEY] = 'not json at all'
        self.assertEqual(self.get(), self.branding)
        self.assertEqual(self.fetch.call_count, 1)
        self.assertEqual(json.loads(self.store[BRANDING_CACHE_KEY])['data'], self.branding)

    def test_entry_missing_timestamp_is_malformed(self):
        self.store[BRANDING_CACHE_KEY] = json.dumps({'data': self.branding})
        self.assertIsNone(BrandingCache(self.store, clock=self.clock).read())
        self.assertNotIn(BRANDING_CACHE_KEY, self.store)

    def test_fetch_failure_after_expiry_propagates(self):
        BrandingCache(self.store, clock=self.clock).write({'logo_url': 'https://old/logo.png'})
        self.clock.advance(2 * 60 * 60)
        self.fetch.side_effect = HostedBackendError('Service Unavailable', status=503)

        with self.assertRaises(HostedBackendError):
            self.get()

    def test_branding_without_logo_is_not_cached(self):
        self.fetch.return_value = {'favicon_url': 'https://cdn.example.com/favicon.ico'}
        self.assertEqual(self.get(), {'favicon_url': 'https://cdn.example.com/favicon.ico'})
        self.assertNotIn(BRANDING_CACHE_KEY, self.store)


def make_response(status_code, body=None, reason='OK'):
    response = requests.Response()
    response.status_code = status_code
    response.reason = reason
    response._content = json.dumps(body).encode() if body is not None else b''
    return response


class HostedBackendClientTests(SimpleTestCase):
    """Test the REST client against a mocked requests session"""

    def setUp(self):
        self.session = mock.Mock()
        self.session.headers = {}
        self.client = HostedBackendClient('https://project.example.co/', 'anon-key', timeout=5, session=self.session)

    def test_auth_headers_are_set(self):
        self.assertEqual(self.session.headers['apikey'], 'anon-key')
        self.assertEqual(self.session.headers['Authorization'], 'Bearer anon-key')

    def test_select_builds_query(self):
        self.session.request.return_value = make_response(200, [{'id': 1}])

        rows = self.client.select('tours', columns='id,region', filters=[eq('status', 'Published')],
                                  order='created_at.desc', limit=5)

        self.assertEqual(rows, [{'id': 1}])
        args, kwargs = self.session.request.call_args
        self.assertEqual(args, ('GET', 'https://project.example.co/rest/v1/tours'))
        self.assertEqual(kwargs['params'], [
            ('select', 'id,region'), ('status', 'eq.Published'), ('order', 'created_at.desc'), ('limit', '5'),
        ])
        self.assertEqual(kwargs['timeout'], 5)

    def test_upsert_asks_for_merge(self):
        self.session.request.return_value = make_response(201, [{'key': 'branding'}])
        self.client.upsert('settings', {'key': 'branding', 'value': {}})
        kwargs = self.session.request.call_args.kwargs
        self.assertIn('resolution=merge-duplicates', kwargs['headers']['Prefer'])

    def test_http_error_carries_status_and_code(self):
        self.session.request.return_value = make_response(
            503, {'message': 'upstream unavailable', 'code': 'PGRST000'}, reason='Service Unavailable')

        with self.assertRaises(HostedBackendError) as ctx:
            self.client.select('tours')

        self.assertEqual(ctx.exception.status, 503)
        self.assertEqual(ctx.exception.code, 'PGRST000')
        self.assertEqual(ctx.exception.message, 'upstream unavailable')
        self.assertTrue(is_retryable(ctx.exception))

    def test_error_without_json_body_uses_reason(self):
        self.session.request.return_value = make_response(429, None, reason='Too Many Requests')
        with self.assertRaises(HostedBackendError) as ctx:
            self.client.select('tours')
        self.assertEqual(ctx.exception.message, 'Too Many Requests')
        self.assertFalse(is_retryable(ctx.exception))

    def test_network_error_has_no_status(self):
        self.session.request.side_effect = requests.ConnectionError('Name or service not known')
        with self.assertRaises(HostedBackendError) as ctx:
            self.client.select('tours')
        self.assertIsNone(ctx.exception.status)
        self.assertTrue(is_retryable(ctx.exception))

    def test_empty_response_returns_none(self):
        self.session.request.return_value = make_response(204)
        self.assertIsNone(self.client.invoke_function('ping', method='GET'))


@mock.patch('treksite.core.retry.time.sleep')
class SettingsServiceTests(SimpleTestCase):
    """Test settings reads and writes"""

    def setUp(self):
        self.backend = FakeHostedBackend(tables={'settings': [
            {'key': 'site_config', 'value': {'title': 'Himalayan Treks', 'email': 'info@example.com'}},
            {'key': 'branding', 'value': {'logo_url': 'https://cdn.example.com/logo.png'}},
        ]})

    def test_get_all_settings_groups_rows_by_key(self, sleep):
        settings_data = get_all_settings(self.backend)
        self.assertEqual(settings_data['site_config']['title'], 'Himalayan Treks')
        self.assertEqual(settings_data['branding']['logo_url'], 'https://cdn.example.com/logo.png')
        self.assertEqual(self.backend.calls[0][:3], ('select', 'settings', 'key,value'))

    def test_get_all_settings_retries_transient_failures(self, sleep):
        self.backend.fail_next(HostedBackendError('Bad Gateway', status=502))
        self.assertIn('branding', get_all_settings(self.backend))
        self.assertEqual(self.backend.count('select'), 2)
        self.assertEqual(sleep.call_count, 1)

    def test_get_branding_defaults_to_empty(self, sleep):
        backend = FakeHostedBackend(tables={'settings': []})
        self.assertEqual(get_branding(backend), {})

    def test_get_branding_ignores_non_object_value(self, sleep):
        backend = FakeHostedBackend(tables={'settings': [
            {'key': 'branding', 'value': 'https://cdn.example.com/logo.png'},
        ]})
        self.assertEqual(get_branding(backend), {})

    def test_update_setting_upserts_with_timestamp(self, sleep):
        update_setting('site_config', {'title': 'New Title'}, client=self.backend)
        kind, table, payload = self.backend.calls[-1]
        self.assertEqual((kind, table), ('upsert', 'settings'))
        self.assertEqual(payload['key'], 'site_config')
        self.assertEqual(payload['value'], {'title': 'New Title'})
        self.assertIn('updated_at', payload)

    def test_update_setting_rejects_unknown_key(self, sleep):
        with self.assertRaises(ValueError):
            update_setting('payments', {}, client=self.backend)
        self.assertEqual(self.backend.calls, [])


class ErrorMappingTests(SimpleTestCase):
    """Test map_tour_load_error"""

    def test_maps_not_found_errors(self):
        result = map_tour_load_error(Exception('Tour not found'))
        self.assertEqual(result.code, 'TOUR_NOT_FOUND')
        self.assertEqual(result.title, 'Tour Not Found')

    def test_maps_network_errors(self):
        result = map_tour_load_error(Exception('Failed to fetch network'))
        self.assertEqual(result.code, 'NETWORK_ERROR')
        self.assertIn('Network', result.title)

    @override_settings(DEBUG=True)
    def test_network_suggestion_is_detailed_in_debug(self):
        result = map_tour_load_error(Exception('network down'))
        self.assertIn('CORS', result.suggestion)

    def test_maps_service_errors(self):
        result = map_tour_load_error(Exception('Database error'))
        self.assertEqual(result.code, 'SERVICE_UNAVAILABLE')
        result = map_tour_load_error(HostedBackendError('Internal Server Error', status=500))
        self.assertEqual(result.code, 'SERVICE_UNAVAILABLE')

    def test_maps_generic_errors(self):
        result = map_tour_load_error(Exception('Something went wrong'))
        self.assertEqual(result.code, 'GENERIC_ERROR')
        self.assertEqual(result.message, 'Something went wrong')
        self.assertEqual(result.to_dict()['title'], 'Failed to Load Tour')


class CredentialTests(TestCase):
    """Test credential generation helpers"""

    def test_random_string_is_alphanumeric(self):
        value = generate_random_string(32)
        self.assertEqual(len(value), 32)
        self.assertTrue(value.isalnum())

    def test_username_format(self):
        username = generate_username()
        self.assertRegex(username, r'^admin_[A-Za-z0-9]{8}$')

    def test_password_has_every_character_class(self):
        for _ in range(20):
            password = generate_strong_password()
            self.assertEqual(len(password), 16)
            self.assertTrue(any(c in UPPERCASE for c in password))
            self.assertTrue(any(c in LOWERCASE for c in password))
            self.assertTrue(any(c in DIGITS for c in password))
            self.assertTrue(any(c in SPECIAL for c in password))

    def test_password_length_is_configurable(self):
        self.assertEqual(len(generate_strong_password(24)), 24)

    def test_password_below_minimum_is_rejected(self):
        with self.assertRaises(ValueError):
            generate_strong_password(11)

    def test_encrypted_credential_decrypts_with_same_key(self):
        token = encrypt_credential('{"username": "admin_x"}', 'secret-one')
        self.assertNotIn('admin_x', token)
        self.assertEqual(decrypt_credential(token, 'secret-one'), '{"username": "admin_x"}')

    def test_encryption_is_salted(self):
        self.assertNotEqual(encrypt_credential('same', 'key'), encrypt_credential('same', 'key'))

    def test_wrong_key_fails_to_decrypt(self):
        token = encrypt_credential('payload', 'secret-one')
        with self.assertRaises(InvalidTag):
            decrypt_credential(token, 'secret-two')

    def test_log_credential_access_writes_audit_log(self):
        log_credential_access('admin_abc12345', 'credential_access')
        entry = AuditLog.objects.get()
        self.assertEqual(entry.action, 'credential_access')
        self.assertEqual(entry.object_id, 'admin_abc12345')
        self.assertIsNone(entry.user)


class CredentialCommandTests(TestCase):
    """Test the credential management commands"""

    def test_generate_admin_credential(self):
        out = StringIO()
        call_command('generate_admin_credential', stdout=out)
        output = out.getvalue()

        self.assertRegex(output, r'Username: admin_[A-Za-z0-9]{8}')
        self.assertIn('Password: ', output)
        self.assertIn('Encrypted Storage Token: ', output)
        self.assertEqual(AuditLog.objects.filter(action='credential_generate').count(), 1)

    def test_generated_password_is_not_audited(self):
        out = StringIO()
        call_command('generate_admin_credential', stdout=out)
        password = out.getvalue().split('Password: ')[1].split('\n')[0].strip()
        entry = AuditLog.objects.get()
        self.assertNotIn(password, json.dumps(entry.changes))
        self.assertNotEqual(entry.object_name, password)

    def test_generate_secure_password(self):
        out = StringIO()
        call_command('generate_secure_password', '--length', '20', '--account', 'ops@example.com', stdout=out)
        output = out.getvalue()
        self.assertIn('Account:  ops@example.com', output)
        password = output.split('PASSWORD: ')[1].split('\n')[0]
        self.assertEqual(len(password), 20)

    def test_generate_secure_password_rejects_short_length(self):
        with self.assertRaises(CommandError):
            call_command('generate_secure_password', '--length', '8', stdout=StringIO())


@override_settings(RETRY_MAX_RETRIES=0)
class BrandingViewTests(TestCase):
    """Test the public branding endpoint"""

    def setUp(self):
        cache.clear()
        self.backend = FakeHostedBackend(tables={'settings': [
            {'key': 'branding', 'value': {'logo_url': 'https://cdn.example.com/logo.png',
                                          'favicon_url': 'https://cdn.example.com/favicon.ico'}},
        ]})
        patcher = mock.patch('treksite.core.settings_service.get_client', return_value=self.backend)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.client = APIClient()

    def test_branding_is_public(self):
        response = self.client.get('/api/v1/branding/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['logo_url'], 'https://cdn.example.com/logo.png')
        self.assertEqual(response.data['favicon_url'], 'https://cdn.example.com/favicon.ico')
        self.assertFalse(response.data['is_default'])

    def test_branding_is_cached_in_session(self):
        self.client.get('/api/v1/branding/')
        response = self.client.get('/api/v1/branding/')
        self.assertEqual(response.data['logo_url'], 'https://cdn.example.com/logo.png')
        self.assertEqual(self.backend.count('select'), 1)

    def test_new_session_fetches_again(self):
        self.client.get('/api/v1/branding/')
        APIClient().get('/api/v1/branding/')
        self.assertEqual(self.backend.count('select'), 2)

    @override_settings(DEFAULT_LOGO_URL='https://static.example.com/default.png')
    def test_backend_failure_falls_back_to_default_logo(self):
        self.backend.fail_next(HostedBackendError('Internal Server Error', status=500))
        response = self.client.get('/api/v1/branding/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['logo_url'], 'https://static.example.com/default.png')
        self.assertTrue(response.data['is_default'])

    @override_settings(DEFAULT_LOGO_URL='https://static.example.com/default.png')
    def test_missing_logo_falls_back_to_default(self):
        self.backend.tables['settings'] = []
        response = self.client.get('/api/v1/branding/')
        self.assertEqual(response.data['logo_url'], 'https://static.example.com/default.png')
        self.assertTrue(response.data['is_default'])

    @override_settings(DEFAULT_LOGO_URL='https://static.example.com/default.png')
    def test_non_object_branding_falls_back_to_default(self):
        self.backend.tables['settings'] = [{'key': 'branding', 'value': 'https://cdn.example.com/logo.png'}]
        response = self.client.get('/api/v1/branding/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['logo_url'], 'https://static.example.com/default.png')
        self.assertTrue(response.data['is_default'])


@override_settings(RETRY_MAX_RETRIES=0)
class SettingsViewTests(TestCase):
    """Test the admin settings endpoints"""

    def setUp(self):
        cache.clear()
        self.backend = FakeHostedBackend(tables={'settings': [
            {'key': 'branding', 'value': {'logo_url': 'https://cdn.example.com/logo.png'}},
            {'key': 'appearance', 'value': {'theme': 'light', 'primary_color': '#0a7'}},
        ]})
        patcher = mock.patch('treksite.core.settings_service.get_client', return_value=self.backend)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_requires_authentication(self):
        response = APIClient().get('/api/v1/settings/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_requires_admin(self):
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())
        response = client.get('/api/v1/settings/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_settings(self):
        response = self.client.get('/api/v1/settings/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['appearance']['theme'], 'light')

    def test_update_setting(self):
        response = self.client.put('/api/v1/settings/site_config/',
                                   {'value': {'title': 'Summit Treks'}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['value'], {'title': 'Summit Treks'})

        log = AuditLog.objects.get(action='setting_update')
        self.assertEqual(log.object_id, 'site_config')
        self.assertEqual(log.user, self.admin)

    def test_update_unknown_key(self):
        response = self.client.put('/api/v1/settings/payments/', {'value': {}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_rejects_unknown_fields(self):
        response = self.client.put('/api/v1/settings/branding/',
                                   {'value': {'logo': 'x'}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_rejects_invalid_theme(self):
        response = self.client.put('/api/v1/settings/appearance/',
                                   {'value': {'theme': 'neon'}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_branding_update_clears_session_cache(self):
        self.client.get('/api/v1/branding/')
        self.client.put('/api/v1/settings/branding/',
                        {'value': {'logo_url': 'https://cdn.example.com/new.png'}}, format='json')
        response = self.client.get('/api/v1/branding/')

        self.assertEqual(response.data['logo_url'], 'https://cdn.example.com/new.png')
        self.assertEqual(self.backend.count('select'), 2)

    def test_backend_client_error_is_passed_through(self):
        self.backend.fail_next(HostedBackendError('permission denied', status=403))
        response = self.client.get('/api/v1/settings/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'permission denied')

    def test_backend_server_error_is_bad_gateway(self):
        self.backend.fail_next(HostedBackendError('Internal Server Error', status=500))
        response = self.client.get('/api/v1/settings/')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)


class AuditLogViewTests(TestCase):
    """Test the audit log endpoint"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        AuditLog.objects.create(user=self.admin, action='tour_update', model_name='Tour', object_id='t1')
        AuditLog.objects.create(user=self.admin, action='setting_update', model_name='Setting', object_id='branding')

    def test_list_audit_logs(self):
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)
        self.assertEqual(response.data[0]['username'], self.admin.username)

    def test_filter_by_action(self):
        response = self.client.get('/api/v1/audit-logs/?action=setting_update')
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['object_id'], 'branding')

    def test_filter_by_model(self):
        response = self.client.get('/api/v1/audit-logs/?model=Tour')
        self.assertEqual(len(response.data), 1)

    def test_filter_by_date_range(self):
        today = timezone.now().date().isoformat()
        response = self.client.get(f'/api/v1/audit-logs/?date_from={today}&date_to={today}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

    def test_malformed_date_filter(self):
        for query in ('date_from=yesterday', 'date_to=2026-13-45'):
            response = self.client.get(f'/api/v1/audit-logs/?{query}')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
