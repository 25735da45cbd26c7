"""
schemas/auth.py
----------------

Pydantic models related to authentication and the persisted identity.
Wire payloads from the DineMore API use camelCase; every model accepts
either the alias or the Python field name and dumps by alias so the
companion answers in the same shape the API speaks.
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

PROFILE_PATTERN = r"^[A-Za-z0-9_-]{1,64}$"

PortalRole = Literal["owner", "manager", "staff"]
Portal = Literal["admin", "diner"]


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class StoredAuth(WireModel):
    """Identity persisted in client-local storage."""

    user_id: str = Field(alias="userId", min_length=1)
    user_type: str = Field(alias="userType", min_length=1)


class User(WireModel):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    last_name: Optional[str] = Field(None, alias="lastName")
    phone: Optional[str] = None
    user_type: str = Field(alias="userType")


class Restaurant(WireModel):
    id: str
    name: str


class BranchAccess(WireModel):
    branch_ids: List[str] = Field(default_factory=list, alias="branchIds")
    has_all_access: bool = Field(False, alias="hasAllAccess")


class AuthStatus(WireModel):
    """Answer of ``GET /api/auth/me``; every field is null when signed out."""

    user: Optional[User] = None
    restaurant: Optional[Restaurant] = None
    portal_role: Optional[PortalRole] = Field(None, alias="portalRole")
    branch_access: Optional[BranchAccess] = Field(None, alias="branchAccess")

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None


class CheckTokenResponse(WireModel):
    has_valid_token: bool = Field(False, alias="hasValidToken")
    requires_otp: Optional[bool] = Field(None, alias="requiresOtp")
    user: Optional[User] = None


class OtpRequestResponse(WireModel):
    success: Optional[bool] = None
    sms_sent: Optional[bool] = Field(None, alias="smsSent")
    message: Optional[str] = None


class VerifyOtpResponse(WireModel):
    success: Optional[bool] = None
    user: User


class LoginResponse(WireModel):
    success: Optional[bool] = None
    user: User
    restaurant: Optional[Restaurant] = None
    portal_role: Optional[PortalRole] = Field(None, alias="portalRole")


# -----------------------------------------------------------------------------
# Companion request bodies
# -----------------------------------------------------------------------------


class ProfileRequest(BaseModel):
    profile: str = Field("default", pattern=PROFILE_PATTERN)


class PhoneRequest(ProfileRequest):
    phone: str = ""


class VerifyOtpRequest(PhoneRequest):
    otp: str = ""


class LoginRequest(ProfileRequest):
    email: str = ""
    password: str = ""
    portal: Portal = "admin"
