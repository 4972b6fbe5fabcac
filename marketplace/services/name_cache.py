# marketplace/services/name_cache.py
import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional

from marketplace.core.enums import UserRole
from marketplace.services.user_directory import UserDirectory

logger = logging.getLogger(__name__)

FALLBACK_NAME = "Unknown User"


@dataclass
class CachedName:
    name: str
    role: Optional[UserRole]
    timestamp: float


class NameCache:
    """
    Process-wide cache of user display names.

    Entries older than ttl_seconds are dropped lazily on read, and the
    scheduler calls sweep() periodically so idle entries do not linger.
    Lookups never raise: an unknown user or a failed fetch caches
    FALLBACK_NAME until the entry expires.

    The entry map is lock-guarded; sweep() may run on a scheduler worker
    thread.
    """

    def __init__(self, ttl_seconds: float = 300, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CachedName] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self):
        with self._lock:
            return len(self._entries)

    def _is_fresh(self, entry: CachedName, now: float) -> bool:
        return now - entry.timestamp < self.ttl_seconds

    def peek(self, user_id: str) -> Optional[CachedName]:
        """Fresh entry for user_id, evicting it if it has gone stale."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(user_id)
            if entry is None:
                return None
            if self._is_fresh(entry, now):
                return entry
            del self._entries[user_id]
            return None

    def store(self, user_id: str, name: str, role: Optional[UserRole] = None) -> CachedName:
        entry = CachedName(name=name, role=role, timestamp=self._clock())
        with self._lock:
            self._entries[user_id] = entry
        return entry

    async def resolve(self, user_id: str, directory: UserDirectory) -> CachedName:
        entry = self.peek(user_id)
        if entry is not None:
            self.hits += 1
            return entry

        self.misses += 1
        try:
            found = await directory.lookup_display_name(user_id)
        except Exception as e:
            logger.warning(f"Name lookup failed for user {user_id}: {e}")
            found = None

        if found is None:
            return self.store(user_id, FALLBACK_NAME)
        name, role = found
        return self.store(user_id, name, role)

    async def resolve_many(self, user_ids: Iterable[str], directory: UserDirectory) -> Dict[str, str]:
        """Resolve every distinct id concurrently; returns {user_id: name}."""
        unique_ids = list(dict.fromkeys(uid for uid in user_ids if uid))
        entries = await asyncio.gather(*(self.resolve(uid, directory) for uid in unique_ids))
        return {uid: entry.name for uid, entry in zip(unique_ids, entries)}

    def sweep(self) -> int:
        """Evict every expired entry. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            stale = [uid for uid, entry in self._entries.items() if not self._is_fresh(entry, now)]
            for uid in stale:
                del self._entries[uid]
        if stale:
            logger.debug(f"Name cache sweep evicted {len(stale)} entries")
        return len(stale)

    def clear(self) -> int:
        with self._lock:
            cleared = len(self._entries)
            self._entries.clear()
        logger.info(f"Name cache cleared ({cleared} entries)")
        return cleared

    def stats(self) -> dict:
        return {
            "entries": len(self),
            "hits": self.hits,
            "misses": self.misses,
            "ttl_seconds": self.ttl_seconds,
        }
