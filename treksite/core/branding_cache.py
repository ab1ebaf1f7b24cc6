"""
Session-scoped cache for the site branding settings.

One entry under a fixed key, stored as a JSON string:

    {"data": {"logo_url": "...", "favicon_url": "..."}, "timestamp": <epoch ms>}

The entry expires one hour after it was written. The store is handed in by
the caller (normally ``request.session``); any mutable mapping works.
"""
import json
import logging
import time

logger = logging.getLogger(__name__)

BRANDING_CACHE_KEY = 'site_branding_settings'
BRANDING_CACHE_DURATION = 1000 * 60 * 60  # 1 hour, in ms


def _now_ms(clock) -> int:
    return int(clock() * 1000)


class BrandingCache:
    """Single-entry branding cache over a key/value store"""

    def __init__(self, store, duration: int = BRANDING_CACHE_DURATION, clock=time.time,
                 key: str = BRANDING_CACHE_KEY):
        self.store = store
        self.duration = duration
        self.clock = clock
        self.key = key

    def read(self):
        """
        Return the cached branding dict, or None on a miss.

        A malformed entry is removed from the store. Expired entries and
        entries without a logo_url are left for the next write to replace.
        """
        raw = self.store.get(self.key)
        if not raw:
            return None

        try:
            parsed = json.loads(raw)
            data = parsed['data']
            timestamp = float(parsed['timestamp'])
        except (TypeError, ValueError, KeyError) as e:
            logger.debug(f"Discarding malformed branding cache entry: {str(e)}")
            self.invalidate()
            return None

        if not isinstance(data, dict) or not data.get('logo_url'):
            return None
        if _now_ms(self.clock) - timestamp >= self.duration:
            logger.debug("Branding cache expired")
            return None

        logger.debug("Branding cache HIT")
        return data

    def write(self, data: dict):
        self.store[self.key] = json.dumps({
            'data': data,
            'timestamp': _now_ms(self.clock),
        })

    def invalidate(self):
        self.store.pop(self.key, None)


def get_cached_branding(store, fetch_branding, duration: int = BRANDING_CACHE_DURATION, clock=time.time):
    """
    Return branding from the store, fetching it on a miss.

    Args:
        store: Mutable mapping holding the cache entry (e.g. request.session)
        fetch_branding: Zero-argument callable returning the branding dict
        duration: Entry lifetime in ms
        clock: Callable returning the current time in seconds

    Fetch errors propagate; expired data is never served as a fallback.
    """
    cache = BrandingCache(store, duration=duration, clock=clock)
    cached = cache.read()
    if cached is not None:
        return cached

    logger.debug("Branding cache MISS")
    branding = fetch_branding() or {}
    if branding.get('logo_url'):
        cache.write(branding)
    return branding
