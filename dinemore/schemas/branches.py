"""
schemas/branches.py
--------------------

Branch definitions and the snapshot of the branch selection context
that the ``/branches`` routes return.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import Field

from dinemore.schemas.auth import ProfileRequest, WireModel


class Branch(WireModel):
    id: str
    restaurant_id: str = Field(alias="restaurantId")
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    is_default: bool = Field(False, alias="isDefault")
    is_active: bool = Field(True, alias="isActive")


class BranchSelectionState(WireModel):
    restaurant_id: Optional[str] = Field(None, alias="restaurantId")
    state: str
    branches: List[Branch] = Field(default_factory=list)
    accessible_branches: List[Branch] = Field(default_factory=list, alias="accessibleBranches")
    selected_branch_id: Optional[str] = Field(None, alias="selectedBranchId")
    selected_branch: Optional[Branch] = Field(None, alias="selectedBranch")
    is_all_branches_view: bool = Field(False, alias="isAllBranchesView")
    has_multiple_branches: bool = Field(False, alias="hasMultipleBranches")
    can_view_all_branches: bool = Field(True, alias="canViewAllBranches")
    is_loading: bool = Field(False, alias="isLoading")
    error: Optional[str] = None


class SelectBranchRequest(ProfileRequest):
    """``branch_id`` null selects the aggregate "all branches" view."""

    branch_id: Optional[str] = Field(None, alias="branchId")

    model_config = {"populate_by_name": True}

