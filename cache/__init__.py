# Cache module
from .redis_cache import (
    init_cache,
    close_cache,
    get_cache,
    set_cache,
    delete_cache,
    cache_config_value,
    get_cached_config_value,
    invalidate_config_value,
    is_cache_available,
)

__all__ = [
    "init_cache",
    "close_cache",
    "get_cache",
    "set_cache",
    "delete_cache",
    "cache_config_value",
    "get_cached_config_value",
    "invalidate_config_value",
    "is_cache_available",
]
