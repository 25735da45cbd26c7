"""
Utility helpers shared across the DineMore companion.
"""

from __future__ import annotations

from .cache import QueryCache, QueryEntry, QueryPolicy

__all__ = [
    "QueryCache",
    "QueryEntry",
    "QueryPolicy",
]
