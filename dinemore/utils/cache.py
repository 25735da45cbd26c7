"""
utils/cache.py
---------------

Per-profile query cache.  Each entry stores the last data fetched for
a query key together with the fetch function and the time it was
fetched.  The refetch policy is fixed when the cache is
created; the default favours consistency over request volume: data is
stale immediately, every read refetches and focus or reconnect events
refetch every known query.  Fetches are attempted once and never
retried.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Hashable, Literal, Optional, Tuple, Union

from dinemore.logging_config import log_event

QueryKey = Tuple[Hashable, ...]


@dataclass(frozen=True)
class QueryPolicy:
    stale_time: float = 0.0
    refetch_on_mount: Union[bool, Literal["always"]] = "always"
    refetch_on_window_focus: bool = True
    refetch_on_reconnect: bool = True
    retry: bool = False


@dataclass
class QueryEntry:
    fetch: Callable[[], Any]
    data: Any = None
    updated_at: Optional[float] = None
    stale_time: Optional[float] = None


@dataclass
class QueryCache:
    """In‑memory query cache keyed by tuples.

    :param policy: defaults applied to every query; cannot be changed
        after construction
    """

    policy: QueryPolicy = field(default_factory=QueryPolicy)
    clock: Callable[[], float] = time.monotonic
    _entries: Dict[QueryKey, QueryEntry] = field(default_factory=dict, init=False, repr=False)

    def _is_fresh(self, entry: QueryEntry) -> bool:
        if entry.updated_at is None:
            return False
        stale_time = self.policy.stale_time if entry.stale_time is None else entry.stale_time
        return self.clock() - entry.updated_at < stale_time

    def _should_fetch(self, entry: QueryEntry) -> bool:
        if entry.updated_at is None:
            return True
        if entry.stale_time is not None:
            return not self._is_fresh(entry)
        mount = self.policy.refetch_on_mount
        if mount == "always":
            return True
        if mount:
            return not self._is_fresh(entry)
        return False

    def _run(self, entry: QueryEntry) -> Any:
        data = entry.fetch()
        entry.data = data
        entry.updated_at = self.clock()
        return data

    def fetch_query(self, key: QueryKey, fetch: Callable[[], Any], *, stale_time: Optional[float] = None) -> Any:
        """Return data for ``key``, calling ``fetch`` unless the entry is fresh.

        A per-query ``stale_time`` overrides the policy for this key.
        Errors from ``fetch`` propagate to the caller and leave the
        previous data in place.
        """
        key = tuple(key)
        entry = self._entries.get(key)
        if entry is None:
            entry = QueryEntry(fetch=fetch)
            self._entries[key] = entry
        entry.fetch = fetch
        entry.stale_time = stale_time
        if not self._should_fetch(entry):
            return entry.data
        return self._run(entry)

    def get_query_data(self, key: QueryKey) -> Any:
        entry = self._entries.get(tuple(key))
        return None if entry is None else entry.data

    def set_query_data(self, key: QueryKey, data: Any) -> None:
        key = tuple(key)
        entry = self._entries.get(key)
        if entry is None:
            entry = QueryEntry(fetch=lambda: data)
            self._entries[key] = entry
        entry.data = data
        entry.updated_at = self.clock()

    def invalidate_queries(self, prefix: QueryKey = ()) -> int:
        """Mark every query whose key starts with ``prefix`` as stale."""
        prefix = tuple(prefix)
        count = 0
        for key, entry in self._entries.items():
            if key[:len(prefix)] == prefix:
                entry.updated_at = None
                count += 1
        return count

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()

    def _refetch_all(self, reason: str) -> int:
        refetched = 0
        for key, entry in list(self._entries.items()):
            if self._is_fresh(entry):
                continue
            try:
                self._run(entry)
            except Exception as exc:
                # background refetch: the previous data stays in place
                log_event(logging.WARNING, "query_refetch_failed", reason=reason, key=list(map(str, key)), detail=str(exc))
                continue
            refetched += 1
        return refetched

    def on_window_focus(self) -> int:
        """Refetch every stale query; returns how many succeeded."""
        if not self.policy.refetch_on_window_focus:
            return 0
        return self._refetch_all("window_focus")

    def on_reconnect(self) -> int:
        if not self.policy.refetch_on_reconnect:
            return 0
        return self._refetch_all("reconnect")
