"""
services/activity_service.py
----------------------------

Activity log retrieval for the admin portal.  Entries come back with
their ``details`` as a JSON string; :func:`format_details` turns the
known actions into a one-line summary for display.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from dinemore.core.config import get_settings
from dinemore.core.errors import BranchContextError
from dinemore.logging_config import log_call
from dinemore.profiles import ProfileSession
from dinemore.schemas.activity import ActivityLog

ACTION_LABELS: Dict[str, str] = {
    "voucher_redeemed": "Voucher Redeemed",
    "settings_updated": "Settings Updated",
    "voucher_type_created": "Voucher Type Created",
    "voucher_type_updated": "Voucher Type Updated",
    "voucher_type_deleted": "Voucher Type Deleted",
    "portal_user_added": "Team Member Added",
    "portal_user_removed": "Team Member Removed",
}


def format_details(action: str, details: Optional[str]) -> Optional[str]:
    """Summarise the JSON ``details`` of an activity entry.

    Returns ``None`` for empty or unparsable details and for actions
    without a summary.
    """
    if not details:
        return None
    try:
        parsed: Any = json.loads(details)
    except ValueError:
        return None
    if not isinstance(parsed, dict):
        return None

    if action == "voucher_redeemed":
        summary = f"Code: {parsed.get('code')}"
        if parsed.get("billId"):
            summary += f", Bill: {parsed['billId']}"
        return summary
    if action == "settings_updated":
        return ", ".join(f"{key}: {value}" for key, value in parsed.items())
    if action in ("voucher_type_created", "voucher_type_deleted"):
        return f'"{parsed["name"]}"' if parsed.get("name") else None
    if action == "voucher_type_updated":
        changes = parsed.get("changes")
        return ", ".join(changes) + " changed" if isinstance(changes, dict) and changes else None
    if action == "portal_user_added":
        return f"{parsed.get('email')} ({parsed.get('role')})"
    return None


def activity_query_key(restaurant_id: str, limit: int):
    return ("/api/restaurants", quote(restaurant_id, safe=""), f"activity-logs?limit={limit}")


@log_call
def get_activity_logs(
    profile: ProfileSession,
    restaurant_id: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[ActivityLog]:
    """Fetch the latest activity of a restaurant, newest first.

    :param restaurant_id: defaults to the restaurant bound to the profile
    :param limit: number of entries; defaults to ``activity_log_limit``
    :raises BranchContextError: if no restaurant is given or bound
    """
    if restaurant_id is None:
        if profile.restaurant is None:
            raise BranchContextError("No restaurant is bound to this session")
        restaurant_id = profile.restaurant.id
    limit = limit or get_settings().activity_log_limit

    key = activity_query_key(restaurant_id, limit)
    query_fn = profile.api.get_query_fn(on401="throw")
    data = profile.queries.fetch_query(key, lambda: query_fn(key))
    logs = [ActivityLog.model_validate(item) for item in data or []]
    for entry in logs:
        entry.summary = format_details(entry.action, entry.details)
    return logs
