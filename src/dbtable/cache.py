"""
Unified caching for live database metadata.

Table listings read from the database catalog are cached here with a TTL.
Cached entries for a table are cleared whenever DDL touches that table.
"""
import logging
import threading

import cachetools

logger = logging.getLogger(__name__)


class Cache:
    """Unified cache manager for the dbtable package.

    Thread-safe singleton that manages all TTL caches.
    """

    _instance = None
    _caches: dict[str, cachetools.TTLCache] = {}
    _lock = threading.RLock()

    @classmethod
    def get_instance(cls) -> 'Cache':
        """Get singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    def get_cache(self, name: str, maxsize: int = 100, ttl: int = 300) -> cachetools.TTLCache:
        """Get or create a TTL cache with the given name.

        Args:
            name: Name of the cache
            maxsize: Maximum cache size
            ttl: Time-to-live in seconds

        Returns
            TTLCache instance
        """
        if name not in self._caches:
            with self._lock:
                if name not in self._caches:
                    self._caches[name] = cachetools.TTLCache(maxsize=maxsize, ttl=ttl)
        return self._caches[name]

    def clear_all(self) -> None:
        """Clear all managed caches."""
        with self._lock:
            for cache in self._caches.values():
                cache.clear()

    def clear_for_table(self, table_name: str) -> None:
        """Clear all cache entries related to a specific table.

        Args:
            table_name: Name of the table to clear cache entries for
        """
        table_lower = table_name.lower()
        with self._lock:
            for cache in self._caches.values():
                keys_to_clear = [
                    key for key in list(cache.keys())
                    if table_lower in str(key).lower()
                ]
                for key in keys_to_clear:
                    if key in cache:
                        del cache[key]
                        logger.debug(f'Cleared cache entry {key} for table {table_name}')

    def get_catalog_cache(self, connection_id: int | None = None) -> cachetools.TTLCache:
        """Get catalog cache for a connection.

        Args:
            connection_id: Connection identifier, or None for global cache

        Returns
            TTLCache for catalog metadata
        """
        cache_name = f'catalog_{connection_id}' if connection_id else 'catalog_global'
        return self.get_cache(cache_name, maxsize=50, ttl=600)
