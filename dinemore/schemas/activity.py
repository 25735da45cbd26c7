"""
schemas/activity.py
--------------------

Activity log entries as returned by
``GET /api/restaurants/:id/activity-logs``.  ``details`` arrives as a
JSON-encoded string (or null) and is kept verbatim.
"""

from __future__ import annotations

from typing import Optional

from pydantic import Field

from dinemore.schemas.auth import WireModel


class ActivityUser(WireModel):
    id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None


class ActivityLog(WireModel):
    id: str
    action: str
    details: Optional[str] = None
    created_at: str = Field(alias="createdAt")
    user: Optional[ActivityUser] = None
    summary: Optional[str] = None
