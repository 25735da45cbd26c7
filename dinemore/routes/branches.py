"""
routes/branches.py
-------------------

Branch selection routes for the admin portal.  They operate on the
branch context of the named profile, which only exists once an admin
sign-in has bound a restaurant.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from dinemore.logging_config import log_event
from dinemore.profiles import ProfileRegistry, ProfileSession
from dinemore.routes.auth import get_profile, get_registry
from dinemore.schemas.branches import SelectBranchRequest
from dinemore.services.branch_service import BranchLoadState, BranchSelection

router = APIRouter(prefix="/branches", tags=["branches"])


def _loaded(selection: BranchSelection) -> dict:
    snapshot = selection.load()
    if selection.state == BranchLoadState.FAILED:
        raise HTTPException(status_code=502, detail=snapshot.error)
    return snapshot.model_dump(by_alias=True)


@router.get("")
def get_branches(profile: ProfileSession = Depends(get_profile)):
    """Current branch list and selection; loads the list on first use."""
    with profile.lock:
        selection = profile.branch_selection
        if selection.state in (BranchLoadState.UNINITIALIZED, BranchLoadState.FAILED):
            return _loaded(selection)
        return selection.snapshot().model_dump(by_alias=True)


@router.post("/refresh")
def post_refresh(profile: ProfileSession = Depends(get_profile)):
    with profile.lock:
        return _loaded(profile.branch_selection)


@router.post("/select")
def post_select(data: SelectBranchRequest, registry: ProfileRegistry = Depends(get_registry)):
    profile = registry.get(data.profile)
    with profile.lock:
        selection = profile.branch_selection
        if data.branch_id is not None and data.branch_id not in {b.id for b in selection.accessible_branches}:
            raise HTTPException(status_code=404, detail=f"Unknown branch {data.branch_id}")
        selection.set_selected_branch_id(data.branch_id)
        log_event(logging.INFO, "branch_selected", profile=data.profile, branch_id=data.branch_id)
        return selection.snapshot().model_dump(by_alias=True)
