"""
Caching helpers for hosted backend reads
Uses the default Django cache (Redis in production)
"""
from django.core.cache import cache
from functools import wraps
import hashlib
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
REGION_COUNTS_CACHE_TTL = 300  # 5 minutes
REGION_TOURS_CACHE_TTL = 120  # 2 minutes


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    # Hash it to keep key length reasonable
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def cached_query(cache_ttl=60, key_prefix="query"):
    """
    Decorator to cache expensive reads

    Usage:
        @cached_query(cache_ttl=300, key_prefix="region_counts")
        def get_region_tour_counts(sort_by='name'):
            ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            cache_key = make_cache_key(key_prefix, *args, **kwargs)

            cached_data = cache.get(cache_key)
            if cached_data is not None:
                logger.debug(f"Cache HIT for {key_prefix}: {cache_key}")
                return cached_data

            logger.debug(f"Cache MISS for {key_prefix}: {cache_key}")
            result = func(*args, **kwargs)
            cache.set(cache_key, result, cache_ttl)
            return result
        return wrapper
    return decorator


def invalidate_cache_pattern(pattern):
    """
    Invalidate all cache keys matching a pattern
    Needs django-redis; other backends fall back to clearing the whole cache
    """
    try:
        from django_redis import get_redis_connection
        redis_conn = get_redis_connection("default")
    except (ImportError, NotImplementedError):
        cache.clear()
        logger.info(f"Cleared cache (no pattern support) for: {pattern}")
        return

    try:
        keys = []
        cursor = 0
        while True:
            cursor, partial_keys = redis_conn.scan(cursor, match=f"*{pattern}*", count=100)
            keys.extend(partial_keys)
            if cursor == 0:
                break

        if keys:
            redis_conn.delete(*keys)
            logger.info(f"Invalidated {len(keys)} cache keys matching pattern: {pattern}")
    except Exception as e:
        logger.warning(f"Could not invalidate cache pattern {pattern}: {str(e)}")


def invalidate_region_cache():
    """Invalidate region counts and per-region tour lists"""
    invalidate_cache_pattern("region_counts")
    invalidate_cache_pattern("region_tours")
    logger.info("Invalidated region cache")
