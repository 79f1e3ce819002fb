"""Client-side query cache with optimistic patching.

The cache is a mirror of server state with no authority of its own. Every
optimistic write goes through ``snapshot`` and ``patch`` and is undone with
``rollback``; ``invalidate`` refetches the authoritative value afterwards.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional

from client.api import ApiError
from client.query_keys import QueryKey

Fetcher = Callable[[], Any]


def key_matches(key: QueryKey, prefix: QueryKey) -> bool:
    return key[: len(prefix)] == tuple(prefix)


@dataclass
class CacheEntry:
    data: Any = None
    has_data: bool = False
    fetcher: Optional[Fetcher] = None
    stale: bool = False
    # Bumped on cancel so that fetches started earlier are discarded.
    generation: int = 0


@dataclass
class Snapshot:
    """Deep copies of cache entries taken before an optimistic patch."""

    entries: Dict[QueryKey, Any] = field(default_factory=dict)

    def __len__(self):
        return len(self.entries)

    def __contains__(self, key):
        return key in self.entries


class QueryCache:
    def __init__(self):
        self._entries: Dict[QueryKey, CacheEntry] = {}

    def _entry(self, key: QueryKey) -> CacheEntry:
        key = tuple(key)
        entry = self._entries.get(key)
        if entry is None:
            entry = CacheEntry()
            self._entries[key] = entry
        return entry

    def _matching(self, prefix: QueryKey) -> Iterator[tuple[QueryKey, CacheEntry]]:
        for key, entry in list(self._entries.items()):
            if key_matches(key, prefix):
                yield key, entry

    def keys_matching(self, prefix: QueryKey) -> List[QueryKey]:
        return [key for key, entry in self._matching(prefix) if entry.has_data]

    def get(self, key: QueryKey, default: Any = None) -> Any:
        entry = self._entries.get(tuple(key))
        if entry is None or not entry.has_data:
            return default
        return entry.data

    def set(self, key: QueryKey, data: Any) -> None:
        entry = self._entry(key)
        entry.data = data
        entry.has_data = True
        entry.stale = False

    def remove(self, prefix: QueryKey) -> int:
        removed = [key for key, _ in self._matching(prefix)]
        for key in removed:
            del self._entries[key]
        return len(removed)

    def is_stale(self, key: QueryKey) -> bool:
        entry = self._entries.get(tuple(key))
        return entry is None or not entry.has_data or entry.stale

    def query(self, key: QueryKey, fetcher: Fetcher) -> Any:
        """Return the cached value for ``key``, fetching it when missing or stale.

        The fetcher is remembered so that later invalidations can refetch the
        entry even when nobody is currently reading it.
        """
        entry = self._entry(key)
        entry.fetcher = fetcher
        if entry.has_data and not entry.stale:
            return entry.data
        token = self.begin_fetch(key)
        data = fetcher()
        self.complete_fetch(key, token, data)
        return self.get(key, data)

    def begin_fetch(self, key: QueryKey) -> int:
        return self._entry(key).generation

    def complete_fetch(self, key: QueryKey, token: int, data: Any) -> bool:
        """Store a fetched value unless the fetch was cancelled meanwhile."""
        entry = self._entry(key)
        if entry.generation != token:
            logging.debug("Discarding cancelled fetch for %s", key)
            return False
        entry.data = data
        entry.has_data = True
        entry.stale = False
        return True

    def cancel(self, prefix: QueryKey) -> int:
        """Cancel in-flight fetches for every entry under ``prefix``."""
        count = 0
        for _, entry in self._matching(prefix):
            entry.generation += 1
            count += 1
        return count

    def snapshot(self, prefix: QueryKey) -> Snapshot:
        return Snapshot(
            {key: copy.deepcopy(entry.data) for key, entry in self._matching(prefix) if entry.has_data}
        )

    def patch(self, prefix: QueryKey, fn: Callable[[Any], Any]) -> int:
        """Replace every cached value under ``prefix`` with ``fn(value)``."""
        patched = 0
        for _, entry in self._matching(prefix):
            if not entry.has_data:
                continue
            entry.data = fn(entry.data)
            patched += 1
        return patched

    def rollback(self, snapshot: Snapshot) -> None:
        for key, data in snapshot.entries.items():
            self.set(key, copy.deepcopy(data))

    def invalidate(self, prefix: QueryKey) -> List[QueryKey]:
        """Mark entries stale and refetch every one that has a fetcher.

        Returns the keys that were refetched. A failing refetch leaves the
        entry stale with its previous value.
        """
        refetched = []
        for key, entry in self._matching(prefix):
            entry.stale = True
            if entry.fetcher is None:
                continue
            token = self.begin_fetch(key)
            try:
                data = entry.fetcher()
            except ApiError:
                logging.warning("Refetch of %s failed", key, exc_info=True)
                continue
            if self.complete_fetch(key, token, data):
                refetched.append(key)
        return refetched
