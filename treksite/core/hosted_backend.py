"""
HTTP client for the hosted backend that owns tours, regions, bookings and settings.

Tables are reached through the REST endpoint (/rest/v1/<table>) with
PostgREST-style filters, edge functions through /functions/v1/<name>.
Every failure is raised as HostedBackendError; HTTP failures carry the
response status, network failures carry none.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

import requests
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

logger = logging.getLogger(__name__)

REST_PATH = 'rest/v1'
FUNCTIONS_PATH = 'functions/v1'


class HostedBackendError(Exception):
    """Failed call to the hosted backend"""

    def __init__(self, message, status=None, code=None, details=None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.details = details

    def __str__(self):
        if self.status:
            return f"{self.message} (status {self.status})"
        return self.message


def eq(column: str, value) -> Tuple[str, str]:
    """Equality filter, e.g. eq('id', 42) -> ('id', 'eq.42')"""
    return column, f'eq.{value}'


class HostedBackendClient:
    """Thin wrapper around requests.Session for the hosted backend"""

    def __init__(self, base_url: str, api_key: str, timeout: float = 10, session=None):
        if not base_url:
            raise ImproperlyConfigured('HOSTED_BACKEND_URL is not configured')
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            'apikey': api_key,
            'Authorization': f'Bearer {api_key}',
            'Content-Type': 'application/json',
        })

    def _request(self, method: str, path: str, params=None, json=None, headers=None):
        url = f"{self.base_url}/{path}"
        try:
            response = self.session.request(
                method, url, params=params, json=json, headers=headers, timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"Hosted backend {method} {path} failed: {str(e)}")
            raise HostedBackendError(f"Network error calling hosted backend: {str(e)}") from e

        if response.status_code >= 400:
            body = {}
            try:
                body = response.json()
            except ValueError:
                pass
            if not isinstance(body, dict):
                body = {}
            message = body.get('message') or body.get('error') or response.reason or 'Request failed'
            logger.warning(f"Hosted backend {method} {path} returned {response.status_code}: {message}")
            raise HostedBackendError(
                message,
                status=response.status_code,
                code=body.get('code'),
                details=body.get('details'),
            )

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # ---- tables ----

    def select(self, table: str, columns: str = '*', filters: Optional[Iterable[Tuple[str, str]]] = None,
               order: Optional[str] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Read rows from a table.

        Args:
            table: Table name
            columns: Column list in select syntax (default: *)
            filters: (column, 'op.value') pairs, see eq()
            order: e.g. 'created_at.desc'
            limit: Maximum number of rows
        """
        params = [('select', columns)]
        params.extend(filters or [])
        if order:
            params.append(('order', order))
        if limit is not None:
            params.append(('limit', str(limit)))
        return self._request('GET', f'{REST_PATH}/{table}', params=params) or []

    def insert(self, table: str, payload) -> List[Dict[str, Any]]:
        return self._request(
            'POST', f'{REST_PATH}/{table}', json=payload,
            headers={'Prefer': 'return=representation'},
        ) or []

    def update(self, table: str, filters: Iterable[Tuple[str, str]], payload) -> List[Dict[str, Any]]:
        return self._request(
            'PATCH', f'{REST_PATH}/{table}', params=list(filters), json=payload,
            headers={'Prefer': 'return=representation'},
        ) or []

    def upsert(self, table: str, payload) -> List[Dict[str, Any]]:
        return self._request(
            'POST', f'{REST_PATH}/{table}', json=payload,
            headers={'Prefer': 'resolution=merge-duplicates,return=representation'},
        ) or []

    def delete(self, table: str, filters: Iterable[Tuple[str, str]]) -> List[Dict[str, Any]]:
        return self._request(
            'DELETE', f'{REST_PATH}/{table}', params=list(filters),
            headers={'Prefer': 'return=representation'},
        ) or []

    # ---- edge functions ----

    def invoke_function(self, name: str, method: str = 'POST', body=None):
        return self._request(method, f'{FUNCTIONS_PATH}/{name}', json=body)


def get_client() -> HostedBackendClient:
    """Build a client from Django settings"""
    return HostedBackendClient(
        getattr(settings, 'HOSTED_BACKEND_URL', ''),
        getattr(settings, 'HOSTED_BACKEND_KEY', ''),
        timeout=getattr(settings, 'HOSTED_BACKEND_TIMEOUT', 10),
    )
