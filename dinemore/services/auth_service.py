"""
services/auth_service.py
------------------------

Sign-in flows against the DineMore API.  Diners sign in with their
phone number: a still-valid access token signs them in directly,
otherwise a one-time code is requested and verified.  Restaurant staff
sign in with email and password through the admin portal.  Every
successful sign-in persists the identity in the profile's session
store; admin sign-ins also bind the branch context to the restaurant
named by the API, with the branch access reported by ``/api/auth/me``.
Signing in as a different user drops the previous branch context.

Missing inputs are rejected before any network call.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from dinemore.core.config import get_settings
from dinemore.core.errors import ApiError, MissingFieldError, RoleMismatchError
from dinemore.logging_config import log_call, log_event
from dinemore.profiles import ProfileSession
from dinemore.schemas.auth import (
    AuthStatus,
    CheckTokenResponse,
    LoginResponse,
    OtpRequestResponse,
    Portal,
    User,
    VerifyOtpResponse,
)

AUTH_QUERY_KEY = ("auth",)


def _require(value: Optional[str], field: str, message: str) -> str:
    value = (value or "").strip()
    if not value:
        raise MissingFieldError(field, message)
    return value


def _remember(profile: ProfileSession, user: User) -> None:
    previous = profile.session_store.get_stored_auth()
    if previous is None or previous.user_id != user.id:
        # the branch context belongs to the identity that bound it
        profile.unbind_restaurant()
    profile.session_store.set_stored_auth(user.id, user.user_type)
    # a new identity makes every cached answer suspect
    profile.queries.invalidate_queries()
    log_event(logging.INFO, "login_success", profile=profile.name, user_id=user.id, user_type=user.user_type)


@log_call
def check_token(profile: ProfileSession, phone: str) -> CheckTokenResponse:
    """Sign a diner in directly if their access token is still valid."""
    phone = _require(phone, "phone", "Please enter your phone number.")
    res = profile.api.api_request("POST", "/api/auth/check-token", {"phone": phone})
    result = CheckTokenResponse.model_validate(res.json())
    if result.has_valid_token and result.user is not None:
        _remember(profile, result.user)
    return result


@log_call
def request_otp(profile: ProfileSession, phone: str) -> OtpRequestResponse:
    phone = _require(phone, "phone", "Please enter your phone number.")
    res = profile.api.api_request("POST", "/api/auth/request-otp", {"phone": phone})
    log_event(logging.INFO, "otp_requested", profile=profile.name)
    return OtpRequestResponse.model_validate(res.json())


@log_call
def verify_otp(profile: ProfileSession, phone: str, otp: str) -> VerifyOtpResponse:
    phone = _require(phone, "phone", "Please enter your phone number.")
    otp = _require(otp, "otp", "Please enter the code we sent you.")
    res = profile.api.api_request("POST", "/api/auth/verify-otp", {"phone": phone, "otp": otp})
    result = VerifyOtpResponse.model_validate(res.json())
    _remember(profile, result.user)
    return result


def _matches_portal(user_type: str, portal: Portal) -> bool:
    if portal == "admin":
        return user_type in get_settings().admin_user_types
    return user_type == "diner"


@log_call
def login(profile: ProfileSession, email: str, password: str, portal: Portal = "admin") -> LoginResponse:
    """Email and password sign-in for the given portal.

    :raises MissingFieldError: if email or password is empty
    :raises RoleMismatchError: if the account belongs to the other portal
    :raises ApiError: if the API rejects the credentials
    """
    if not (email or "").strip() or not password:
        raise MissingFieldError("email", "Please enter your email and password.")
    res = profile.api.api_request("POST", "/api/auth/login", {"email": email.strip(), "password": password})
    result = LoginResponse.model_validate(res.json())

    if not _matches_portal(result.user.user_type, portal):
        log_event(
            logging.WARNING,
            "login_role_mismatch",
            profile=profile.name,
            portal=portal,
            user_type=result.user.user_type,
        )
        if portal == "diner":
            raise RoleMismatchError("This account is not registered as a diner.")
        raise RoleMismatchError("This account is not registered as a restaurant admin.")

    _remember(profile, result.user)
    if result.restaurant is None:
        profile.bind_restaurant(None)
        return result

    # The login answer carries no branch access; ask /me before binding
    # so a restricted account never resolves to the aggregate view.
    status = fetch_auth_status(profile)
    access = None
    if status.restaurant is not None and status.restaurant.id == result.restaurant.id:
        access = status.branch_access
    profile.bind_restaurant(result.restaurant, access)
    return result


@log_call
def fetch_auth_status(profile: ProfileSession) -> AuthStatus:
    """Return who the API believes is signed in, cached for a short while.

    Any non-2xx answer counts as signed out.  The branch context follows
    the restaurant and branch access in the answer.
    """

    def fetch() -> dict:
        try:
            res = profile.api.api_request("GET", "/api/auth/me")
        except ApiError as exc:
            log_event(logging.INFO, "auth_status_unavailable", profile=profile.name, detail=str(exc))
            return {}
        return res.json()

    data = profile.queries.fetch_query(AUTH_QUERY_KEY, fetch, stale_time=get_settings().auth_stale_time)
    status = AuthStatus.model_validate(data or {})
    if status.restaurant is not None:
        profile.bind_restaurant(status.restaurant, status.branch_access)
    elif profile.has_branch_context:
        profile.unbind_restaurant()
    return status


@log_call
def logout(profile: ProfileSession) -> None:
    """End the server session, then forget everything the profile cached.

    The local sign-out happens even when the API call fails.
    """
    try:
        profile.api.api_request("POST", "/api/auth/logout")
    except (ApiError, httpx.HTTPError) as exc:
        log_event(logging.ERROR, "logout_error", profile=profile.name, detail=str(exc))
    profile.session_store.clear_stored_auth()
    profile.queries.clear()
    profile.unbind_restaurant()
    log_event(logging.INFO, "logout", profile=profile.name)
