"""
Profile sessions for the DineMore companion.

A profile stands for one browser profile: it owns its client-local
storage, the session store reading the persisted identity from it, an
API client with its own cookie jar, a query cache and, while an admin
session is bound to a restaurant, the branch selection context.

Profiles are handed to routes and services explicitly through the
``ProfileRegistry`` kept on ``app.state``; nothing here is a module
level global.  FastAPI runs the sync routes in a thread pool, so a
route holds ``profile.lock`` while it touches the profile; the cache
and branch context are not thread-safe on their own.
"""

from __future__ import annotations

import logging
import re
import threading
from typing import Dict, List, Optional
from urllib.parse import quote

import httpx

from dinemore.clients.http_client import ApiClient
from dinemore.core.config import Settings, get_settings
from dinemore.core.errors import BranchContextError
from dinemore.core.session import SessionStore
from dinemore.core.storage import ClientStorage, FileStorage, MemoryStorage
from dinemore.logging_config import log_event
from dinemore.schemas.auth import PROFILE_PATTERN, BranchAccess, Restaurant
from dinemore.schemas.branches import Branch
from dinemore.services.branch_service import BranchSelection
from dinemore.utils.cache import QueryCache, QueryPolicy

_PROFILE_RE = re.compile(PROFILE_PATTERN)


def branches_query_key(restaurant_id: str):
    return ("/api/restaurants", quote(restaurant_id, safe=""), "branches")


class ProfileSession:
    def __init__(
        self,
        name: str,
        storage: ClientStorage,
        *,
        base_url: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: Optional[float] = None,
        policy: Optional[QueryPolicy] = None,
    ) -> None:
        self.name = name
        self.storage = storage
        self.session_store = SessionStore(storage)
        self.api = ApiClient(self.session_store, base_url=base_url, transport=transport, timeout=timeout)
        self.queries = QueryCache(policy or QueryPolicy())
        self.restaurant: Optional[Restaurant] = None
        self._branch_selection: Optional[BranchSelection] = None
        self.lock = threading.RLock()

    def fetch_branches(self, restaurant_id: str) -> List[Branch]:
        key = branches_query_key(restaurant_id)
        query_fn = self.api.get_query_fn(on401="throw")
        data = self.queries.fetch_query(key, lambda: query_fn(key))
        return [Branch.model_validate(item) for item in data or []]

    def bind_restaurant(self, restaurant: Optional[Restaurant], access: Optional[BranchAccess] = None) -> None:
        """Start (or move) the branch context for ``restaurant``.

        ``None`` tears the context down.
        """
        if restaurant is None:
            self.unbind_restaurant()
            return
        self.restaurant = restaurant
        if self._branch_selection is None:
            self._branch_selection = BranchSelection(self.storage, self.fetch_branches, restaurant.id, access)
        else:
            self._branch_selection.set_restaurant(restaurant.id, access)

    def unbind_restaurant(self) -> None:
        self.restaurant = None
        self._branch_selection = None

    @property
    def has_branch_context(self) -> bool:
        return self._branch_selection is not None

    @property
    def branch_selection(self) -> BranchSelection:
        """The branch context; reading it without a bound restaurant is a bug."""
        if self._branch_selection is None:
            raise BranchContextError(
                "Branch selection is only available within a signed-in restaurant session"
            )
        return self._branch_selection

    def on_window_focus(self) -> int:
        """Refetch stale queries as a browser tab regaining focus would.

        Returns the number of queries refetched.
        """
        return self.queries.on_window_focus()

    def on_reconnect(self) -> int:
        return self.queries.on_reconnect()

    def close(self) -> None:
        self.api.close()


class ProfileRegistry:
    """Creates profiles on first use and closes them on shutdown.

    :param settings: configuration; defaults to :func:`get_settings`
    :param transport: optional HTTPX transport shared by every profile,
        used to point the companion at a fake DineMore API in tests
    """

    def __init__(self, settings: Optional[Settings] = None, transport: Optional[httpx.BaseTransport] = None) -> None:
        self.settings = settings or get_settings()
        self._transport = transport
        self._profiles: Dict[str, ProfileSession] = {}
        self._lock = threading.Lock()

    def _storage_for(self, name: str) -> ClientStorage:
        if self.settings.storage_dir is None:
            return MemoryStorage()
        return FileStorage(self.settings.storage_dir / f"{name}.json")

    def get(self, name: str) -> ProfileSession:
        if not _PROFILE_RE.match(name or ""):
            raise ValueError(f"invalid profile name: {name!r}")
        with self._lock:
            profile = self._profiles.get(name)
            if profile is None:
                profile = ProfileSession(
                    name,
                    self._storage_for(name),
                    base_url=self.settings.api_base_url,
                    transport=self._transport,
                    timeout=self.settings.http_timeout,
                )
                self._profiles[name] = profile
                log_event(logging.INFO, "profile_opened", profile=name)
        return profile

    def close(self) -> None:
        with self._lock:
            for profile in self._profiles.values():
                profile.close()
            self._profiles.clear()
