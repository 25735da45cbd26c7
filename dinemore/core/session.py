"""
core/session.py
---------------

Session store: the single source of truth for "who is making this
request".  The identity is persisted as JSON in the profile's
client-local storage and read back on every outbound call to build the
identity headers.  Unreadable content is treated as signed out.
"""

from __future__ import annotations

import json
import logging
from typing import Dict, Optional

from pydantic import ValidationError

from dinemore.core.keys import auth_key
from dinemore.core.storage import ClientStorage
from dinemore.logging_config import log_event
from dinemore.schemas.auth import StoredAuth

USER_ID_HEADER = "X-User-Id"
USER_TYPE_HEADER = "X-User-Type"


class SessionStore:
    def __init__(self, storage: ClientStorage) -> None:
        self.storage = storage

    def get_stored_auth(self) -> Optional[StoredAuth]:
        """Return the persisted identity, or ``None`` if absent or malformed."""
        raw = self.storage.get_item(auth_key())
        if not raw:
            return None
        try:
            return StoredAuth.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as exc:
            log_event(logging.WARNING, "stored_auth_malformed", detail=type(exc).__name__)
            return None

    def set_stored_auth(self, user_id: str, user_type: str) -> None:
        """Persist the identity, replacing any previous one."""
        self.storage.set_item(auth_key(), json.dumps({"userId": user_id, "userType": user_type}))

    def clear_stored_auth(self) -> None:
        self.storage.remove_item(auth_key())

    def get_auth_headers(self) -> Dict[str, str]:
        auth = self.get_stored_auth()
        if auth is None:
            return {}
        return {USER_ID_HEADER: auth.user_id, USER_TYPE_HEADER: auth.user_type}
