"""
core/keys.py
------------

Builders for the keys used in client-local storage. All code that
reads or writes storage goes through these helpers so per-restaurant
keys are spelled the same way everywhere.
"""

from __future__ import annotations

from typing import NewType

StorageKey = NewType("StorageKey", str)

AUTH_STORAGE_KEY = StorageKey("dinemore_auth")
BRANCH_VIEW_KEY_PREFIX = "dinemore_all_branches_view"

# Persisted in place of a branch id when the aggregate view is selected
ALL_BRANCHES_SENTINEL = "all"


def auth_key() -> StorageKey:
    """Key holding the persisted ``{userId, userType}`` identity."""
    return AUTH_STORAGE_KEY


def branch_selection_key(restaurant_id: str) -> StorageKey:
    """Key holding the selected branch (or ``"all"``) for one restaurant.

    :raises ValueError: if ``restaurant_id`` is empty
    """
    if not restaurant_id or not str(restaurant_id).strip():
        raise ValueError("restaurant_id is required to build a branch selection key")
    return StorageKey(f"{BRANCH_VIEW_KEY_PREFIX}_{restaurant_id}")
