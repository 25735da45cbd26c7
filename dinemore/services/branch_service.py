"""
services/branch_service.py
--------------------------

Branch selection context for an admin session.

A ``BranchSelection`` tracks which branch of the bound restaurant the
admin views, or the aggregate "all branches" view.  It moves through
an explicit :class:`BranchLoadState` per restaurant *epoch*: binding a
different restaurant starts a new epoch, clears the selection and
forgets the branch list.  Every fetch is tagged with the epoch it was
started in and its outcome is dropped if the epoch has moved on, so a
slow answer for the previous restaurant can never populate the
current one.

The selection is persisted in client-local storage under a key scoped
to the restaurant, holding either a branch id or ``"all"``.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, List, Optional

from dinemore.core.keys import ALL_BRANCHES_SENTINEL, branch_selection_key
from dinemore.core.storage import ClientStorage
from dinemore.logging_config import log_event
from dinemore.schemas.auth import BranchAccess
from dinemore.schemas.branches import Branch, BranchSelectionState

FetchBranches = Callable[[str], List[Branch]]


class BranchLoadState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    RESOLVED = "resolved"
    FAILED = "failed"


class BranchSelection:
    """Selection state for one restaurant at a time.

    :param storage: the profile's client-local storage
    :param fetch_branches: callable returning the branch list of a
        restaurant id; exceptions it raises are recorded, not propagated
    :param restaurant_id: restaurant bound initially, if any
    :param access: branch access of the signed-in user; ``None`` means
        every branch is accessible
    """

    def __init__(
        self,
        storage: ClientStorage,
        fetch_branches: FetchBranches,
        restaurant_id: Optional[str] = None,
        access: Optional[BranchAccess] = None,
    ) -> None:
        self._storage = storage
        self._fetch_branches = fetch_branches
        self._restaurant_id: Optional[str] = None
        self._access = access
        self._epoch = 0
        self._state = BranchLoadState.UNINITIALIZED
        self._branches: List[Branch] = []
        self._selected_branch_id: Optional[str] = None
        self._error: Optional[Exception] = None
        if restaurant_id:
            self.set_restaurant(restaurant_id, access)

    # -----------------------------------------------------------------
    # Restaurant binding
    # -----------------------------------------------------------------

    @property
    def restaurant_id(self) -> Optional[str]:
        return self._restaurant_id

    @property
    def epoch(self) -> int:
        return self._epoch

    def set_restaurant(self, restaurant_id: Optional[str], access: Optional[BranchAccess] = None) -> None:
        """Bind ``restaurant_id``; a different id resets the context.

        Rebinding the same restaurant only updates the branch access and
        moves a selection the user may no longer see.
        """
        self._access = access
        if restaurant_id == self._restaurant_id:
            self._enforce_access()
            return
        self._epoch += 1
        self._restaurant_id = restaurant_id
        self._state = BranchLoadState.UNINITIALIZED
        self._branches = []
        self._selected_branch_id = None
        self._error = None
        log_event(logging.INFO, "branch_context_reset", restaurant_id=restaurant_id, epoch=self._epoch)

    # -----------------------------------------------------------------
    # Loading and resolution
    # -----------------------------------------------------------------

    def load(self) -> BranchSelectionState:
        """Fetch the branch list and resolve the selection if not yet done.

        Without a bound restaurant nothing is fetched and the list stays
        empty.  The returned snapshot reflects the state after the fetch.
        """
        restaurant_id = self._restaurant_id
        if not restaurant_id:
            self._branches = []
            return self.snapshot()

        epoch = self._epoch
        previous = self._state
        self._state = BranchLoadState.LOADING
        try:
            branches = self._fetch_branches(restaurant_id)
        except Exception as exc:
            if epoch != self._epoch:
                log_event(logging.INFO, "branch_fetch_discarded", restaurant_id=restaurant_id, epoch=epoch)
                return self.snapshot()
            # a failed refetch keeps an already resolved selection
            if previous != BranchLoadState.RESOLVED:
                self._state = BranchLoadState.FAILED
            else:
                self._state = BranchLoadState.RESOLVED
            self._error = exc
            log_event(logging.WARNING, "branch_fetch_failed", restaurant_id=restaurant_id, detail=str(exc))
            return self.snapshot()

        if epoch != self._epoch:
            log_event(logging.INFO, "branch_fetch_discarded", restaurant_id=restaurant_id, epoch=epoch)
            return self.snapshot()

        self._branches = list(branches)
        self._error = None
        if previous == BranchLoadState.RESOLVED:
            self._state = BranchLoadState.RESOLVED
            self._enforce_access()
        elif self._branches:
            self._selected_branch_id = self._resolve_initial()
            self._state = BranchLoadState.RESOLVED
            log_event(
                logging.INFO,
                "branch_selection_resolved",
                restaurant_id=restaurant_id,
                selected_branch_id=self._selected_branch_id,
            )
        else:
            # nothing to resolve against until the restaurant has branches
            self._state = BranchLoadState.UNINITIALIZED
        return self.snapshot()

    def _saved_selection(self) -> Optional[str]:
        return self._storage.get_item(branch_selection_key(self._restaurant_id))

    def _resolve_initial(self) -> Optional[str]:
        saved = self._saved_selection()
        branch_ids = {b.id for b in self._branches}

        if not self.can_view_all_branches:
            accessible = self.accessible_branches
            if saved and saved in {b.id for b in accessible}:
                return saved
            return accessible[0].id if accessible else None

        if saved == ALL_BRANCHES_SENTINEL and self.has_multiple_branches:
            return None
        if saved and saved in branch_ids:
            return saved
        if self.has_multiple_branches:
            return None
        default = next((b for b in self._branches if b.is_default), None)
        return (default or self._branches[0]).id

    def _enforce_access(self) -> None:
        if self._state != BranchLoadState.RESOLVED or self.can_view_all_branches:
            return
        accessible = self.accessible_branches
        if not accessible or self._selected_branch_id in {b.id for b in accessible}:
            return
        previous = self._selected_branch_id
        self.set_selected_branch_id(accessible[0].id)
        log_event(
            logging.INFO,
            "branch_selection_restricted",
            restaurant_id=self._restaurant_id,
            previous=previous,
            selected_branch_id=self._selected_branch_id,
        )

    # -----------------------------------------------------------------
    # Selection
    # -----------------------------------------------------------------

    def set_selected_branch_id(self, branch_id: Optional[str]) -> None:
        """Select a branch, or the aggregate view with ``None``, and persist it."""
        if branch_id is None and not self.can_view_all_branches and self.accessible_branches:
            branch_id = self.accessible_branches[0].id
        self._selected_branch_id = branch_id
        if self._restaurant_id:
            value = ALL_BRANCHES_SENTINEL if branch_id is None else branch_id
            self._storage.set_item(branch_selection_key(self._restaurant_id), value)

    @property
    def selected_branch_id(self) -> Optional[str]:
        return self._selected_branch_id

    @property
    def selected_branch(self) -> Optional[Branch]:
        if self._selected_branch_id is None:
            return None
        return next((b for b in self._branches if b.id == self._selected_branch_id), None)

    # -----------------------------------------------------------------
    # Derived values
    # -----------------------------------------------------------------

    @property
    def state(self) -> BranchLoadState:
        return self._state

    @property
    def branches(self) -> List[Branch]:
        return list(self._branches)

    @property
    def error(self) -> Optional[Exception]:
        return self._error

    @property
    def is_loading(self) -> bool:
        return self._state == BranchLoadState.LOADING

    @property
    def can_view_all_branches(self) -> bool:
        return self._access is None or self._access.has_all_access

    @property
    def accessible_branches(self) -> List[Branch]:
        if self.can_view_all_branches:
            return list(self._branches)
        allowed = set(self._access.branch_ids)
        return [b for b in self._branches if b.id in allowed]

    @property
    def has_multiple_branches(self) -> bool:
        return len(self._branches) > 1

    @property
    def is_all_branches_view(self) -> bool:
        return self._selected_branch_id is None and self.has_multiple_branches and self.can_view_all_branches

    def snapshot(self) -> BranchSelectionState:
        return BranchSelectionState(
            restaurant_id=self._restaurant_id,
            state=self._state.value,
            branches=self.branches,
            accessible_branches=self.accessible_branches,
            selected_branch_id=self._selected_branch_id,
            selected_branch=self.selected_branch,
            is_all_branches_view=self.is_all_branches_view,
            has_multiple_branches=self.has_multiple_branches,
            can_view_all_branches=self.can_view_all_branches,
            is_loading=self.is_loading,
            error=str(self._error) if self._error is not None else None,
        )
