"""
routes/auth.py
---------------

API routes for signing in and out and for the client focus and
reconnect signals.  These routes resolve the profile named in the
request, hold its lock and delegate to the auth service; errors raised
there are turned into HTTP answers by the handlers in
:mod:`dinemore.main`.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Request

from dinemore.logging_config import log_event
from dinemore.profiles import ProfileRegistry, ProfileSession
from dinemore.schemas.auth import (
    PROFILE_PATTERN,
    LoginRequest,
    PhoneRequest,
    ProfileRequest,
    VerifyOtpRequest,
)
from dinemore.services import auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


def get_registry(request: Request) -> ProfileRegistry:
    """Dependency to retrieve the profile registry from the application state."""
    return request.app.state.profiles


def get_profile(
    profile: str = Query("default", pattern=PROFILE_PATTERN),
    registry: ProfileRegistry = Depends(get_registry),
) -> ProfileSession:
    return registry.get(profile)


@router.post("/check-token")
def post_check_token(data: PhoneRequest, registry: ProfileRegistry = Depends(get_registry)):
    log_event(logging.INFO, "check_token_request", profile=data.profile)
    profile = registry.get(data.profile)
    with profile.lock:
        result = auth_service.check_token(profile, data.phone)
    return result.model_dump(by_alias=True)


@router.post("/request-otp")
def post_request_otp(data: PhoneRequest, registry: ProfileRegistry = Depends(get_registry)):
    log_event(logging.INFO, "request_otp_request", profile=data.profile)
    profile = registry.get(data.profile)
    with profile.lock:
        result = auth_service.request_otp(profile, data.phone)
    return result.model_dump(by_alias=True, exclude_none=True)


@router.post("/verify-otp")
def post_verify_otp(data: VerifyOtpRequest, registry: ProfileRegistry = Depends(get_registry)):
    log_event(logging.INFO, "verify_otp_request", profile=data.profile)
    profile = registry.get(data.profile)
    with profile.lock:
        result = auth_service.verify_otp(profile, data.phone, data.otp)
    return result.model_dump(by_alias=True)


@router.post("/login")
def post_login(data: LoginRequest, registry: ProfileRegistry = Depends(get_registry)):
    log_event(logging.INFO, "login_request", profile=data.profile, portal=data.portal, email=data.email)
    profile = registry.get(data.profile)
    with profile.lock:
        result = auth_service.login(profile, data.email, data.password, data.portal)
    return result.model_dump(by_alias=True)


@router.get("/me")
def get_me(profile: ProfileSession = Depends(get_profile)):
    with profile.lock:
        return auth_service.fetch_auth_status(profile).model_dump(by_alias=True)


@router.get("/session")
def get_session(profile: ProfileSession = Depends(get_profile)):
    """Identity currently persisted for the profile, or null."""
    stored = profile.session_store.get_stored_auth()
    return {"profile": profile.name, "auth": stored.model_dump(by_alias=True) if stored else None}


@router.post("/session/focus")
def post_session_focus(data: ProfileRequest, registry: ProfileRegistry = Depends(get_registry)):
    """The client regained focus: refetch every stale query of the profile."""
    profile = registry.get(data.profile)
    with profile.lock:
        refetched = profile.on_window_focus()
    return {"profile": profile.name, "refetched": refetched}


@router.post("/session/reconnect")
def post_session_reconnect(data: ProfileRequest, registry: ProfileRegistry = Depends(get_registry)):
    """The client is back online: refetch every stale query of the profile."""
    profile = registry.get(data.profile)
    with profile.lock:
        refetched = profile.on_reconnect()
    return {"profile": profile.name, "refetched": refetched}


@router.post("/logout")
def post_logout(data: ProfileRequest, registry: ProfileRegistry = Depends(get_registry)):
    profile = registry.get(data.profile)
    with profile.lock:
        auth_service.logout(profile)
    return {"success": True}
