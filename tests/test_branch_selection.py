from __future__ import annotations

import pytest

from dinemore.core.errors import BranchContextError
from dinemore.core.keys import branch_selection_key
from dinemore.schemas.auth import BranchAccess, Restaurant
from dinemore.schemas.branches import Branch
from dinemore.services.branch_service import BranchLoadState, BranchSelection
from tests.conftest import make_branch


def branches(*ids, restaurant_id="r1", default=None):
    return [Branch.model_validate(make_branch(i, restaurant_id, isDefault=(i == default))) for i in ids]


class FakeFetch:
    def __init__(self, by_restaurant):
        self.by_restaurant = by_restaurant
        self.calls = []

    def __call__(self, restaurant_id):
        self.calls.append(restaurant_id)
        result = self.by_restaurant[restaurant_id]
        if isinstance(result, Exception):
            raise result
        return result


def make_selection(storage, by_restaurant, restaurant_id="r1", access=None):
    fetch = FakeFetch(by_restaurant)
    return BranchSelection(storage, fetch, restaurant_id, access), fetch


def test_starts_uninitialized_without_fetching(storage):
    selection, fetch = make_selection(storage, {"r1": branches("a", "b")})

    assert selection.state == BranchLoadState.UNINITIALIZED
    assert selection.selected_branch_id is None
    assert fetch.calls == []


def test_multi_branch_defaults_to_aggregate_view(storage):
    selection, _ = make_selection(storage, {"r1": branches("a", "b", "c")})

    snapshot = selection.load()

    assert selection.state == BranchLoadState.RESOLVED
    assert selection.selected_branch_id is None
    assert selection.is_all_branches_view is True
    assert snapshot.is_all_branches_view is True
    assert snapshot.has_multiple_branches is True


def test_single_branch_selects_it_even_when_all_was_persisted(storage):
    storage.set_item(branch_selection_key("r1"), "all")
    selection, _ = make_selection(storage, {"r1": branches("only", default="only")})

    selection.load()

    assert selection.selected_branch_id == "only"
    assert selection.is_all_branches_view is False


def test_single_branch_without_default_flag_selects_first(storage):
    selection, _ = make_selection(storage, {"r1": branches("only")})

    selection.load()

    assert selection.selected_branch_id == "only"


def test_persisted_all_keeps_aggregate_view(storage):
    storage.set_item(branch_selection_key("r1"), "all")
    selection, _ = make_selection(storage, {"r1": branches("a", "b", default="a")})

    selection.load()

    assert selection.selected_branch_id is None
    assert selection.is_all_branches_view is True


def test_persisted_branch_is_restored(storage):
    storage.set_item(branch_selection_key("r1"), "b")
    selection, _ = make_selection(storage, {"r1": branches("a", "b", "c")})

    selection.load()

    assert selection.selected_branch_id == "b"
    assert selection.selected_branch.name == "Branch b"
    assert selection.is_all_branches_view is False


def test_persisted_branch_that_no_longer_exists_falls_back_to_aggregate(storage):
    storage.set_item(branch_selection_key("r1"), "gone")
    selection, _ = make_selection(storage, {"r1": branches("a", "b")})

    selection.load()

    assert selection.selected_branch_id is None
    assert selection.is_all_branches_view is True


def test_persisted_branch_that_no_longer_exists_falls_back_to_single_branch(storage):
    storage.set_item(branch_selection_key("r1"), "gone")
    selection, _ = make_selection(storage, {"r1": branches("a")})

    selection.load()

    assert selection.selected_branch_id == "a"


def test_selection_is_persisted_per_restaurant(storage):
    selection, _ = make_selection(storage, {"r1": branches("a", "b")})
    selection.load()

    selection.set_selected_branch_id("b")
    assert storage.get_item("dinemore_all_branches_view_r1") == "b"
    assert selection.selected_branch_id == "b"

    selection.set_selected_branch_id(None)
    assert storage.get_item("dinemore_all_branches_view_r1") == "all"
    assert selection.selected_branch is None
    assert selection.is_all_branches_view is True


def test_selected_branch_is_none_for_unknown_id(storage):
    selection, _ = make_selection(storage, {"r1": branches("a", "b")})
    selection.load()

    selection.set_selected_branch_id("zzz")

    assert selection.selected_branch is None
    assert selection.is_all_branches_view is False


def test_later_loads_keep_the_current_selection(storage):
    selection, fetch = make_selection(storage, {"r1": branches("a", "b")})
    selection.load()
    selection.set_selected_branch_id("a")
    storage.remove_item(branch_selection_key("r1"))

    selection.load()

    assert selection.selected_branch_id == "a"
    assert fetch.calls == ["r1", "r1"]


def test_switching_restaurant_resets_and_uses_new_key(storage):
    storage.set_item(branch_selection_key("r2"), "y")
    selection, fetch = make_selection(
        storage,
        {"r1": branches("a", "b"), "r2": branches("x", "y", restaurant_id="r2")},
    )
    selection.load()
    selection.set_selected_branch_id("b")

    selection.set_restaurant("r2")

    assert selection.state == BranchLoadState.UNINITIALIZED
    assert selection.selected_branch_id is None
    assert selection.branches == []

    selection.load()
    assert selection.selected_branch_id == "y"
    assert storage.get_item(branch_selection_key("r1")) == "b"
    assert fetch.calls == ["r1", "r2"]


def test_same_restaurant_does_not_reset(storage):
    selection, _ = make_selection(storage, {"r1": branches("a", "b")})
    selection.load()
    selection.set_selected_branch_id("a")
    epoch = selection.epoch

    selection.set_restaurant("r1")

    assert selection.epoch == epoch
    assert selection.selected_branch_id == "a"


def test_answer_for_previous_restaurant_is_discarded(storage):
    selection = None

    def fetch(restaurant_id):
        if restaurant_id == "r1":
            # the admin switches restaurant while r1's list is in flight
            selection.set_restaurant("r2")
            return branches("a")
        return branches("x", "y", restaurant_id="r2")

    selection = BranchSelection(storage, fetch, "r1")
    selection.load()

    assert selection.restaurant_id == "r2"
    assert selection.state == BranchLoadState.UNINITIALIZED
    assert selection.branches == []
    assert selection.selected_branch_id is None

    selection.load()
    assert [b.id for b in selection.branches] == ["x", "y"]
    assert selection.is_all_branches_view is True


def test_failure_for_previous_restaurant_is_discarded(storage):
    selection = None

    def fetch(restaurant_id):
        selection.set_restaurant("r2")
        raise RuntimeError("timeout")

    selection = BranchSelection(storage, fetch, "r1")
    selection.load()

    assert selection.state == BranchLoadState.UNINITIALIZED
    assert selection.error is None


def test_failed_fetch_is_exposed_then_recovers(storage):
    selection, fetch = make_selection(storage, {"r1": RuntimeError("500: boom")})

    snapshot = selection.load()

    assert selection.state == BranchLoadState.FAILED
    assert snapshot.error == "500: boom"
    assert selection.is_loading is False

    fetch.by_restaurant["r1"] = branches("a", "b")
    selection.load()
    assert selection.state == BranchLoadState.RESOLVED
    assert selection.error is None


def test_failed_refetch_keeps_resolved_selection(storage):
    selection, fetch = make_selection(storage, {"r1": branches("a", "b")})
    selection.load()
    selection.set_selected_branch_id("b")

    fetch.by_restaurant["r1"] = RuntimeError("network down")
    selection.load()

    assert selection.state == BranchLoadState.RESOLVED
    assert selection.selected_branch_id == "b"
    assert str(selection.error) == "network down"


def test_empty_branch_list_leaves_selection_unresolved(storage):
    selection, fetch = make_selection(storage, {"r1": []})

    selection.load()
    assert selection.state == BranchLoadState.UNINITIALIZED

    fetch.by_restaurant["r1"] = branches("a")
    selection.load()
    assert selection.state == BranchLoadState.RESOLVED
    assert selection.selected_branch_id == "a"


def test_no_restaurant_means_no_fetch(storage):
    selection, fetch = make_selection(storage, {}, restaurant_id=None)

    snapshot = selection.load()

    assert fetch.calls == []
    assert snapshot.branches == []
    assert selection.restaurant_id is None


def test_loading_flag_is_visible_during_fetch(storage):
    seen = []
    selection = None

    def fetch(restaurant_id):
        seen.append(selection.is_loading)
        return branches("a")

    selection = BranchSelection(storage, fetch, "r1")
    selection.load()

    assert seen == [True]
    assert selection.is_loading is False


def test_restricted_access_picks_accessible_branch(storage):
    access = BranchAccess(branchIds=["b", "c"], hasAllAccess=False)
    selection, _ = make_selection(storage, {"r1": branches("a", "b", "c")}, access=access)

    selection.load()

    assert selection.can_view_all_branches is False
    assert [b.id for b in selection.accessible_branches] == ["b", "c"]
    assert selection.selected_branch_id == "b"
    assert selection.is_all_branches_view is False


def test_restricted_access_restores_accessible_persisted_branch(storage):
    storage.set_item(branch_selection_key("r1"), "c")
    access = BranchAccess(branchIds=["b", "c"], hasAllAccess=False)
    selection, _ = make_selection(storage, {"r1": branches("a", "b", "c")}, access=access)

    selection.load()

    assert selection.selected_branch_id == "c"


def test_restricted_access_cannot_select_aggregate_view(storage):
    access = BranchAccess(branchIds=["c"], hasAllAccess=False)
    selection, _ = make_selection(storage, {"r1": branches("a", "b", "c")}, access=access)
    selection.load()

    selection.set_selected_branch_id(None)

    assert selection.selected_branch_id == "c"
    assert storage.get_item(branch_selection_key("r1")) == "c"


def test_narrowed_access_moves_aggregate_view_to_accessible_branch(storage):
    selection, fetch = make_selection(storage, {"r1": branches("a", "b")})
    selection.load()
    assert selection.is_all_branches_view is True

    selection.set_restaurant("r1", BranchAccess(branchIds=["b"], hasAllAccess=False))

    assert selection.selected_branch_id == "b"
    assert selection.selected_branch.id == "b"
    assert selection.is_all_branches_view is False
    assert storage.get_item(branch_selection_key("r1")) == "b"
    assert fetch.calls == ["r1"]


def test_narrowed_access_replaces_branch_no_longer_accessible(storage):
    storage.set_item(branch_selection_key("r1"), "a")
    selection, _ = make_selection(storage, {"r1": branches("a", "b", "c")})
    selection.load()
    assert selection.selected_branch_id == "a"

    selection.set_restaurant("r1", BranchAccess(branchIds=["c"], hasAllAccess=False))
    assert selection.selected_branch_id == "c"

    selection.set_restaurant("r1", BranchAccess(branchIds=["a", "b", "c"], hasAllAccess=True))
    assert selection.selected_branch_id == "c"


def test_refetch_checks_selection_against_access(storage):
    access = BranchAccess(branchIds=["b", "c"], hasAllAccess=False)
    selection, fetch = make_selection(storage, {"r1": branches("a", "b", "c")}, access=access)
    selection.load()
    assert selection.selected_branch_id == "b"

    fetch.by_restaurant["r1"] = branches("a", "c")
    selection.load()

    assert selection.selected_branch_id == "c"
    assert storage.get_item(branch_selection_key("r1")) == "c"


def test_access_change_before_resolution_waits_for_load(storage):
    selection, fetch = make_selection(storage, {"r1": branches("a", "b")})

    selection.set_restaurant("r1", BranchAccess(branchIds=["b"], hasAllAccess=False))

    assert fetch.calls == []
    assert storage.get_item(branch_selection_key("r1")) is None
    selection.load()
    assert selection.selected_branch_id == "b"


def test_profile_without_restaurant_has_no_branch_context(profile):
    with pytest.raises(BranchContextError):
        profile.branch_selection


def test_profile_binding_creates_and_moves_context(profile, fake_api):
    fake_api.add("GET", "/api/restaurants/r1/branches", json=[make_branch("a"), make_branch("b")])

    profile.bind_restaurant(Restaurant(id="r1", name="Chez R1"))
    profile.branch_selection.load()
    assert profile.branch_selection.is_all_branches_view is True

    profile.bind_restaurant(Restaurant(id="r2", name="Chez R2"))
    assert profile.branch_selection.restaurant_id == "r2"
    assert profile.branch_selection.state == BranchLoadState.UNINITIALIZED

    profile.bind_restaurant(None)
    with pytest.raises(BranchContextError):
        profile.branch_selection
