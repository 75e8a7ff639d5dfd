#!/usr/bin/env python3
"""
Thread-safe in-memory cache for catalog records
Avoids fetching the same TV show or movie from TMDB more than once per run.
"""

import threading
from typing import Optional, Dict, Tuple

from model import CatalogRecord


class RecordCache:
    """Thread-safe in-memory cache of catalog records keyed by (kind, id, language)"""

    def __init__(self):
        """
        Initialize the cache

        Cache is unbounded (no size limit) and thread-safe.
        """
        self._cache: Dict[Tuple[str, int, str], CatalogRecord] = {}
        self._lock = threading.Lock()

    def get(self, kind: str, record_id: int, language: str) -> Optional[CatalogRecord]:
        """
        Get a cached record

        Args:
            kind: "tv" or "movie"
            record_id: TMDB id
            language: Language the record was fetched in

        Returns:
            The record if found, None otherwise
        """
        with self._lock:
            return self._cache.get((kind, record_id, language))

    def put(self, kind: str, record_id: int, language: str, value: CatalogRecord) -> None:
        with self._lock:
            self._cache[(kind, record_id, language)] = value

    def clear(self) -> None:
        """Clear all cached entries"""
        with self._lock:
            self._cache.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._cache)
