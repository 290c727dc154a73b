"""
Signal Cache Store using diskcache.

Keeps exactly one entry per (location_key, kind). Writes overwrite in place;
entries are never expired or evicted by the store. Staleness is decided by
the gateway on read, and deletion is left to whoever removes the listing.
"""

import json
import logging
from datetime import datetime
from typing import Optional

import diskcache

from ..exceptions import PersistenceFailure
from ..models import PAYLOAD_MODELS, CachedSignal, SignalKind, SignalPayload

logger = logging.getLogger(__name__)


class SignalCacheStore:
    """
    Disk-based store for computed location signals.

    Uses diskcache for persistent storage. A single ``set`` per upsert keeps
    the write atomic, so concurrent writers for one key resolve to
    last-write-wins without application locks.
    """

    def __init__(self, directory: str, size_limit: int = 2**30):
        self._directory = directory
        self._size_limit = size_limit
        self._cache: Optional[diskcache.Cache] = None
        self._initialized = False

    def initialize(self) -> None:
        """Open the cache directory."""
        if self._initialized:
            return

        try:
            self._cache = diskcache.Cache(
                self._directory,
                size_limit=self._size_limit,
                eviction_policy="none",
            )
            self._initialized = True
            logger.info(f"Signal cache initialized at {self._directory}")
        except Exception as e:
            logger.error(f"Failed to initialize signal cache: {e}")
            # Continue without cache; every lookup becomes a miss
            self._initialized = False

    def close(self) -> None:
        """Close the cache."""
        if self._cache:
            try:
                self._cache.close()
            except Exception as e:
                logger.warning(f"Error closing cache: {e}")
            self._cache = None
            self._initialized = False

    @property
    def is_ready(self) -> bool:
        """Check if cache is ready."""
        return self._initialized and self._cache is not None

    def _make_key(self, location_key: str, kind: SignalKind) -> str:
        return f"signal:{SignalKind(kind).value}:{location_key}"

    def get(self, location_key: str, kind: SignalKind) -> Optional[CachedSignal]:
        """
        Get the cached signal for a location.

        Args:
            location_key: Stable location identity (listing id)
            kind: Signal kind

        Returns:
            CachedSignal, or None if absent, unreadable or the store is down
        """
        if not self.is_ready:
            return None

        key = self._make_key(location_key, kind)

        try:
            cached_data = self._cache.get(key)

            if cached_data is None:
                logger.debug(f"Cache miss for key: {key}")
                return None

            data = json.loads(cached_data)
            kind = SignalKind(data["kind"])
            entry = CachedSignal(
                location_key=data["location_key"],
                kind=kind,
                payload=PAYLOAD_MODELS[kind].model_validate(data["payload"]),
                computed_at=datetime.fromisoformat(data["computed_at"]),
            )

            logger.info(f"Cache hit for key: {key}")
            return entry

        except Exception as e:
            logger.warning(f"Error reading from cache: {e}")
            return None

    def upsert(
        self,
        location_key: str,
        kind: SignalKind,
        payload: SignalPayload,
        computed_at: datetime,
    ) -> CachedSignal:
        """
        Insert or overwrite the entry for (location_key, kind).

        Returns:
            The stored CachedSignal

        Raises:
            PersistenceFailure: If the store is not ready or the write fails
        """
        if not self.is_ready:
            raise PersistenceFailure("Signal cache is not initialized")

        kind = SignalKind(kind)
        key = self._make_key(location_key, kind)
        entry = CachedSignal(
            location_key=location_key,
            kind=kind,
            payload=payload,
            computed_at=computed_at,
        )

        try:
            data = {
                "location_key": location_key,
                "kind": kind.value,
                "payload": payload.model_dump(mode="json"),
                "computed_at": computed_at.isoformat(),
            }
            # No expire: staleness is checked on read
            self._cache.set(key, json.dumps(data))
        except Exception as e:
            logger.error(f"Error writing to cache for key {key}: {e}")
            raise PersistenceFailure(f"Failed to write {key}: {e}") from e

        logger.info(f"Stored signal for key: {key}")
        return entry

    def delete(self, location_key: str, kind: SignalKind) -> bool:
        """
        Delete a cached entry.

        Returns:
            True if deleted, False otherwise
        """
        if not self.is_ready:
            return False

        key = self._make_key(location_key, kind)

        try:
            deleted = self._cache.delete(key)
            if deleted:
                logger.info(f"Deleted cache entry: {key}")
            return deleted
        except Exception as e:
            logger.warning(f"Error deleting from cache: {e}")
            return False

    def clear(self) -> bool:
        """
        Clear all cached entries.

        Returns:
            True if successful, False otherwise
        """
        if not self.is_ready:
            return False

        try:
            self._cache.clear()
            logger.info("Cache cleared")
            return True
        except Exception as e:
            logger.warning(f"Error clearing cache: {e}")
            return False

    def stats(self) -> dict:
        """Get cache statistics."""
        if not self.is_ready:
            return {"status": "not initialized"}

        try:
            return {
                "status": "ready",
                "size": len(self._cache),
                "volume_bytes": self._cache.volume(),
                "directory": self._directory,
            }
        except Exception as e:
            return {"status": "error", "error": str(e)}
