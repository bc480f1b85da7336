"""
Query cache with prefix invalidation

Keys are tuples whose first element is an entity type, e.g.
("leads", "list", params) or ("lead", lead_id). Invalidation marks entries
stale rather than dropping them: readers may still see the old value until
the next fetch refetches it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from threading import RLock
from typing import Any, Callable, Dict, Iterable, Optional, Tuple, Union

CacheKey = Tuple[Any, ...]

# Entity type of a mutation -> key prefixes it makes stale
INVALIDATION_POLICY: Dict[str, Tuple[str, ...]] = {
    "clients": ("clients", "client", "dashboard"),
    "leads": ("leads", "lead", "dashboard"),
    "lead_conversion": ("leads", "lead", "clients", "client", "dashboard"),
    "users": ("users", "user"),
    "companies": ("companies", "company"),
    "tenant": ("tenant",),
}


def make_key(*parts: Any) -> CacheKey:
    """Build a hashable key; dict parts become sorted item tuples"""
    return tuple(
        tuple(sorted((k, v) for k, v in part.items() if v is not None)) if isinstance(part, dict) else part
        for part in parts
    )


@dataclass
class CacheEntry:
    value: Any
    fetched_at: datetime = field(default_factory=datetime.utcnow)
    stale: bool = False


class QueryCache:
    """In-memory cache of query results keyed by tuples"""

    def __init__(self):
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._lock = RLock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    def peek(self, key: CacheKey) -> Optional[CacheEntry]:
        """Current entry, stale or not, without fetching"""
        with self._lock:
            return self._entries.get(key)

    def set(self, key: CacheKey, value: Any) -> Any:
        with self._lock:
            self._entries[key] = CacheEntry(value=value)
        return value

    def fetch(self, key: CacheKey, loader: Callable[[], Any]) -> Any:
        """Cached value when fresh, otherwise the loader's result"""
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and not entry.stale:
                return entry.value
        return self.set(key, loader())

    def invalidate(self, *prefixes: Union[str, CacheKey]) -> int:
        """Mark every entry under the given prefixes stale; returns how many"""
        normalized = [p if isinstance(p, tuple) else (p,) for p in prefixes]
        marked = 0
        with self._lock:
            for key, entry in self._entries.items():
                if any(key[:len(prefix)] == prefix for prefix in normalized) and not entry.stale:
                    entry.stale = True
                    marked += 1
        return marked

    def invalidate_for(self, entity_type: str) -> int:
        """Apply the invalidation policy for a mutation of entity_type"""
        return self.invalidate(*INVALIDATION_POLICY.get(entity_type, (entity_type,)))

    def stale_keys(self) -> Iterable[CacheKey]:
        with self._lock:
            return [key for key, entry in self._entries.items() if entry.stale]

    def clear(self):
        with self._lock:
            self._entries.clear()
