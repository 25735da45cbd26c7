"""
routes/activity.py
-------------------

Activity log listing for the restaurant bound to a profile.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from dinemore.profiles import ProfileSession
from dinemore.routes.auth import get_profile
from dinemore.services.activity_service import get_activity_logs

router = APIRouter(tags=["activity"])


@router.get("/activity-logs")
def list_activity_logs(
    profile: ProfileSession = Depends(get_profile),
    restaurant_id: Optional[str] = Query(None, alias="restaurantId"),
    limit: Optional[int] = Query(None, ge=1, le=500),
):
    with profile.lock:
        logs = get_activity_logs(profile, restaurant_id=restaurant_id, limit=limit)
    return [entry.model_dump(by_alias=True) for entry in logs]
