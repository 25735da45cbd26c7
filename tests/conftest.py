from __future__ import annotations

from typing import Callable, Dict, List, Optional, Tuple

import httpx
import pytest

from dinemore.core.session import SessionStore
from dinemore.core.storage import MemoryStorage
from dinemore.profiles import ProfileSession

BASE_URL = "http://dinemore.test"

Handler = Callable[[httpx.Request], httpx.Response]


class FakeDineMore:
    """Stand-in for the DineMore API served through ``httpx.MockTransport``.

    Handlers are registered per (method, path); unknown routes answer
    404 with the body ``not found``.  Every request is recorded.
    """

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], Handler] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, path: str, status: int = 200, json=None, text: Optional[str] = None,
            handler: Optional[Handler] = None, headers: Optional[dict] = None) -> None:
        if handler is None:
            def handler(request: httpx.Request) -> httpx.Response:
                if text is not None:
                    return httpx.Response(status, text=text, headers=headers)
                return httpx.Response(status, json=json, headers=headers)
        self.routes[(method.upper(), path)] = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, text="not found")
        return handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]


def make_branch(branch_id: str, restaurant_id: str = "r1", **extra) -> dict:
    data = {
        "id": branch_id,
        "restaurantId": restaurant_id,
        "name": f"Branch {branch_id}",
        "address": None,
        "phone": None,
        "isDefault": False,
        "isActive": True,
    }
    data.update(extra)
    return data


def make_user(user_id: str = "u1", user_type: str = "restaurant_admin", **extra) -> dict:
    data = {
        "id": user_id,
        "email": f"{user_id}@example.com",
        "name": "Alex",
        "lastName": None,
        "phone": "+15550001",
        "userType": user_type,
    }
    data.update(extra)
    return data


@pytest.fixture
def fake_api() -> FakeDineMore:
    return FakeDineMore()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def session_store(storage) -> SessionStore:
    return SessionStore(storage)


@pytest.fixture
def profile(storage, fake_api):
    session = ProfileSession("test", storage, base_url=BASE_URL, transport=fake_api.transport)
    yield session
    session.close()
