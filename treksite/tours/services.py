"""
Tour records in the hosted backend.

Reads are retried on transient failures, writes are sent once. Payloads are
stripped to the columns the `tours` table actually has before they are sent.
"""
import logging

from django.utils import timezone

from treksite.core.cache_utils import (
    REGION_COUNTS_CACHE_TTL,
    REGION_TOURS_CACHE_TTL,
    cached_query,
    invalidate_region_cache,
)
from treksite.core.hosted_backend import eq, get_client
from treksite.core.retry import retry_call_with_settings
from .validation import compute_region_counts, sort_region_counts

logger = logging.getLogger(__name__)

TOURS_TABLE = 'tours'

TOUR_COLUMNS = {
    'name', 'url_slug', 'description', 'status', 'price', 'currency', 'duration',
    'difficulty', 'region', 'country', 'featured_image', 'gallery_images',
    'itineraries', 'tour_highlights', 'seasonal_prices', 'group_discounts',
    'faqs', 'inclusions', 'exclusions', 'max_group_size', 'best_season',
    'meta_title', 'meta_description', 'focus_keywords', 'published_at',
}


class TourNotFound(Exception):
    pass


def clean_tour_payload(data):
    """Drop keys that are not tour columns (e.g. price_includes)"""
    dropped = sorted(set(data) - TOUR_COLUMNS)
    if dropped:
        logger.debug(f"Dropping unknown tour fields: {', '.join(dropped)}")
    return {key: value for key, value in data.items() if key in TOUR_COLUMNS}


def _single(rows, message):
    if not rows:
        raise TourNotFound(message)
    return rows[0]


def get_tour_by_id(tour_id, client=None):
    client = client or get_client()
    rows = retry_call_with_settings(
        lambda: client.select(TOURS_TABLE, filters=[eq('id', tour_id)], limit=1)
    )
    return _single(rows, f"Tour not found: {tour_id}")


def get_tour_by_slug(slug, client=None):
    client = client or get_client()
    rows = retry_call_with_settings(
        lambda: client.select(TOURS_TABLE, filters=[eq('url_slug', slug)], limit=1)
    )
    return _single(rows, f"Tour not found: {slug}")


def get_tours_by_region(region_name, status=None, client=None):
    """Tours in a region, newest first; optionally only those with the given status"""
    if not region_name:
        return []
    client = client or get_client()
    filters = [eq('region', region_name)]
    if status:
        filters.append(eq('status', status))
    return retry_call_with_settings(
        lambda: client.select(TOURS_TABLE, filters=filters, order='created_at.desc')
    )


@cached_query(cache_ttl=REGION_TOURS_CACHE_TTL, key_prefix="region_tours")
def get_published_tours_by_region(region_name):
    return get_tours_by_region(region_name, status='Published')


@cached_query(cache_ttl=REGION_COUNTS_CACHE_TTL, key_prefix="region_counts")
def get_region_tour_counts(sort_by='name'):
    """
    Number of tours per region, as a list of {'region', 'count'} dicts.
    Sorted by region name, or by count (largest first) when sort_by='count'.
    """
    client = get_client()
    rows = retry_call_with_settings(lambda: client.select(TOURS_TABLE, columns='id,region'))
    return sort_region_counts(compute_region_counts(rows), sort_by)


def create_tour(data, client=None):
    client = client or get_client()
    payload = clean_tour_payload(data)
    if payload.get('status') == 'Published' and not payload.get('published_at'):
        payload['published_at'] = timezone.now().isoformat()

    rows = client.insert(TOURS_TABLE, payload)
    tour = _single(rows, "Tour was not returned after insert")
    logger.info(f"Created tour: {tour.get('name')} (ID: {tour.get('id')})")
    invalidate_region_cache()
    return tour


def update_tour(tour_id, updates, client=None):
    """
    Update a tour. Publishing stamps published_at, moving back to Draft clears it.
    """
    client = client or get_client()
    payload = clean_tour_payload(updates)
    payload['updated_at'] = timezone.now().isoformat()

    status = payload.get('status')
    if status == 'Published':
        payload['published_at'] = timezone.now().isoformat()
    elif status == 'Draft':
        payload['published_at'] = None

    rows = client.update(TOURS_TABLE, [eq('id', tour_id)], payload)
    tour = _single(rows, f"Tour not found: {tour_id}")
    logger.info(f"Updated tour: {tour_id}")
    invalidate_region_cache()
    return tour
