"""
Per-user caching of reference lists (brands, models, sellers, booking persons).

List keys carry a per-user version number; bumping the version on any change
retires every cached list of that user at once, whatever filters were used.
"""
from django.conf import settings
from django.core.cache import cache
import logging

logger = logging.getLogger(__name__)

# Cache key prefixes
REFERENCE_LIST_KEY_PREFIX = 'reference_list:'
REFERENCE_VERSION_KEY_PREFIX = 'reference_version:'


def get_reference_version_key(user_id) -> str:
    return f"{REFERENCE_VERSION_KEY_PREFIX}{user_id}"


def get_reference_version(user_id) -> int:
    version = cache.get(get_reference_version_key(user_id))
    if version is None:
        version = 1
        cache.set(get_reference_version_key(user_id), version, None)
    return version


def get_reference_list_cache_key(kind: str, user_id, filter_key: str = 'all') -> str:
    """Get cache key for a user's reference list (filtered by e.g. brand)"""
    version = get_reference_version(user_id)
    return f"{REFERENCE_LIST_KEY_PREFIX}{kind}:{user_id}:v{version}:{filter_key}"


def get_cached_reference_list(kind: str, user_id, filter_key: str = 'all'):
    cached_data = cache.get(get_reference_list_cache_key(kind, user_id, filter_key))
    if cached_data is not None:
        logger.debug(f"Cache hit for {kind} list of user {user_id} ({filter_key})")
    return cached_data


def cache_reference_list(kind: str, user_id, data, filter_key: str = 'all', ttl: int = None):
    ttl = ttl or settings.REFERENCE_LIST_CACHE_TTL
    cache.set(get_reference_list_cache_key(kind, user_id, filter_key), data, ttl)
    logger.debug(f"Cached {kind} list of user {user_id} ({filter_key}): {len(data)} rows")


def invalidate_reference_lists(user_id):
    """Retire every cached reference list of the user"""
    key = get_reference_version_key(user_id)
    try:
        cache.incr(key)
    except ValueError:
        # Key expired or never set
        cache.set(key, 2, None)
    logger.debug(f"Invalidated reference lists of user {user_id}")
