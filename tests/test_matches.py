"""
Tests for padel_api.matches: creation, admission, leave, edit and listings.

The service runs against the in-memory store, the same contract the
Firestore store implements.
"""
from __future__ import annotations

import pytest

from padel_api.constants import MATCHES
from padel_api.errors import ConflictError, Forbidden, NotFound, ValidationError


# ---------- Creation ----------


def test_create_derives_bounds_from_creator_level(matches, player):
    uid = player("ana", level=4)
    match = matches.create(uid, {"title": "Friday", "mode": "1v1"})

    assert match["levelMin"] == 3.5
    assert match["levelMax"] == 4.5
    assert match["maxPlayers"] == 2
    assert match["players"] == ["ana"]
    assert match["status"] == "open"
    assert match["createdBy"] == "ana"
    assert match["id"]


def test_create_defaults_to_2v2(matches, player):
    match = matches.create(player("ana"), {})
    assert match["mode"] == "2v2"
    assert match["maxPlayers"] == 4
    assert match["title"] == "Partido"


def test_create_requires_level_in_profile(matches, player, store):
    uid = player("ana", level=None)
    with pytest.raises(ValidationError) as exc_info:
        matches.create(uid, {})
    assert exc_info.value.message == "profile incomplete"


def test_create_without_profile_is_incomplete(matches):
    with pytest.raises(ValidationError):
        matches.create("ghost", {})


def test_create_rejects_inverted_bounds_and_persists_nothing(matches, player, store):
    uid = player("ana")
    with pytest.raises(ValidationError):
        matches.create(uid, {"levelMin": 5, "levelMax": 3})
    assert store.query(MATCHES) == []


def test_create_rejects_unknown_mode(matches, player, store):
    with pytest.raises(ValidationError):
        matches.create(player("ana"), {"mode": "3v3"})
    assert store.query(MATCHES) == []


def test_create_accepts_band_bounds(matches, player):
    match = matches.create(player("ana"), {"levelMin": "7ma", "levelMax": "4ta"})
    assert (match["levelMin"], match["levelMax"]) == (2.0, 5.0)


# ---------- Join ----------


def test_join_fills_1v1_then_rejects_next(matches, player):
    match = matches.create(player("ana", level=4), {"mode": "1v1"})
    matches.join(match["id"], player("bea", level=4.5))

    stored = matches.get(match["id"])
    assert stored["players"] == ["ana", "bea"]
    assert stored["status"] == "full"

    with pytest.raises(ConflictError) as exc_info:
        matches.join(match["id"], player("cris", level=1))
    assert exc_info.value.message == "match full"


def test_join_rejects_level_mismatch(matches, player):
    match = matches.create(player("ana", level=4), {"mode": "1v1"})
    with pytest.raises(ConflictError) as exc_info:
        matches.join(match["id"], player("dani", level=6))
    assert exc_info.value.message == "level mismatch"
    assert matches.get(match["id"])["players"] == ["ana"]


def test_join_missing_match_wins_over_missing_profile(matches):
    with pytest.raises(NotFound):
        matches.join("nope", "ghost")


def test_join_requires_profile_level(matches, player):
    match = matches.create(player("ana"), {})
    with pytest.raises(ValidationError):
        matches.join(match["id"], player("bea", level=None))


def test_join_twice_is_rejected(matches, player):
    match = matches.create(player("ana"), {})
    matches.join(match["id"], player("bea"))
    with pytest.raises(ConflictError) as exc_info:
        matches.join(match["id"], "bea")
    assert exc_info.value.message == "already joined"


def test_creator_cannot_join_own_match(matches, player):
    match = matches.create(player("ana"), {})
    with pytest.raises(ConflictError) as exc_info:
        matches.join(match["id"], "ana")
    assert exc_info.value.message == "already joined"


def test_join_closed_match_is_rejected(matches, player):
    match = matches.create(player("ana"), {})
    matches.close(match["id"], "ana")
    with pytest.raises(ConflictError) as exc_info:
        matches.join(match["id"], player("bea"))
    assert exc_info.value.message == "match closed"


def test_join_treats_missing_bound_as_unbounded(matches, player, store):
    match = matches.create(player("ana", level=4), {})

    def drop_level_max(doc):
        return {"levelMax": None}

    store.transact(MATCHES, match["id"], drop_level_max)
    matches.join(match["id"], player("eva", level=7))
    assert "eva" in matches.get(match["id"])["players"]


def test_2v2_becomes_full_on_fourth_player(matches, player):
    match = matches.create(player("ana"), {})
    for uid in ("bea", "cris", "dani"):
        assert matches.get(match["id"])["status"] == "open"
        matches.join(match["id"], player(uid))
    stored = matches.get(match["id"])
    assert len(stored["players"]) == 4
    assert stored["status"] == "full"


# ---------- Leave ----------


def test_leave_removes_member_and_reopens(matches, player):
    match = matches.create(player("ana", level=4), {"mode": "1v1"})
    matches.join(match["id"], player("bea", level=4))
    matches.leave(match["id"], "bea")

    stored = matches.get(match["id"])
    assert stored["players"] == ["ana"]
    assert stored["status"] == "open"


def test_creator_cannot_leave(matches, player):
    match = matches.create(player("ana"), {})
    before = matches.get(match["id"])
    with pytest.raises(ConflictError) as exc_info:
        matches.leave(match["id"], "ana")
    assert exc_info.value.message == "creator cannot leave"
    assert matches.get(match["id"]) == before


def test_leave_by_non_member_is_rejected(matches, player):
    match = matches.create(player("ana"), {})
    with pytest.raises(ConflictError) as exc_info:
        matches.leave(match["id"], "bea")
    assert exc_info.value.message == "not a member"


def test_leave_keeps_closed_match_closed(matches, player):
    match = matches.create(player("ana"), {})
    matches.join(match["id"], player("bea"))
    matches.close(match["id"], "ana")
    matches.leave(match["id"], "bea")
    assert matches.get(match["id"])["status"] == "closed"


# ---------- Edit / delete / close ----------


def test_update_merges_fields(matches, player):
    match = matches.create(player("ana"), {"title": "Old", "zone": "Norte", "date": "2026-11-01"})
    updated = matches.update(match["id"], "ana", {"title": "New", "levelMax": 5})

    assert updated["title"] == "New"
    assert updated["zone"] == "Norte"
    assert updated["date"] == "2026-11-01"
    assert updated["levelMax"] == 5.0
    assert updated["levelMin"] == 3.5


def test_update_by_non_creator_is_forbidden(matches, player):
    match = matches.create(player("ana"), {"title": "Old"})
    with pytest.raises(Forbidden):
        matches.update(match["id"], "bea", {"title": "Hijacked"})
    assert matches.get(match["id"])["title"] == "Old"


def test_update_rejects_inverted_bounds(matches, player):
    match = matches.create(player("ana", level=4), {})
    with pytest.raises(ValidationError):
        matches.update(match["id"], "ana", {"levelMin": 5})
    assert matches.get(match["id"])["levelMin"] == 3.5


def test_update_ignores_membership_fields(matches, player):
    match = matches.create(player("ana"), {})
    updated = matches.update(match["id"], "ana", {"players": [], "status": "full", "maxPlayers": 10})
    assert updated["players"] == ["ana"]
    assert updated["status"] == "open"
    assert updated["maxPlayers"] == 4


def test_delete_only_by_creator(matches, player):
    match = matches.create(player("ana"), {})
    with pytest.raises(Forbidden):
        matches.delete(match["id"], "bea")
    matches.delete(match["id"], "ana")
    with pytest.raises(NotFound):
        matches.get(match["id"])


def test_update_missing_match(matches):
    with pytest.raises(NotFound):
        matches.update("nope", "ana", {"title": "x"})


def test_close_allowed_for_admin_only_besides_creator(matches, player):
    match = matches.create(player("ana"), {})
    with pytest.raises(Forbidden):
        matches.close(match["id"], "bea")
    assert matches.close(match["id"], "admin")["status"] == "closed"


# ---------- Listings ----------


def test_search_filters_by_level_range(matches, player):
    low = matches.create(player("low", level=2), {})
    mid = matches.create(player("mid", level=4), {})
    high = matches.create(player("high", level=6), {})

    ids = [m["id"] for m in matches.search(level=4.2)]
    assert ids == [mid["id"]]

    ids = [m["id"] for m in matches.search()]
    assert ids == [high["id"], mid["id"], low["id"]]


def test_search_returns_only_open_matches(matches, player):
    full = matches.create(player("ana", level=4), {"mode": "1v1"})
    matches.join(full["id"], player("bea", level=4))
    open_match = matches.create(player("cris", level=4), {})

    assert [m["id"] for m in matches.search()] == [open_match["id"]]
    assert [m["id"] for m in matches.search(level=4)] == [open_match["id"]]


def test_search_by_date_and_zone_sorted_newest_first(matches, player):
    uid = player("ana")
    first = matches.create(uid, {"date": "2026-11-01", "zone": "Norte"})
    matches.create(uid, {"date": "2026-11-01", "zone": "Sur"})
    matches.create(uid, {"date": "2026-11-02", "zone": "Norte"})
    last = matches.create(uid, {"date": "2026-11-01", "zone": "Norte"})

    ids = [m["id"] for m in matches.search(date="2026-11-01", zone="Norte")]
    assert ids == [last["id"], first["id"]]


def test_search_level_without_level_max_passes(matches, player, store):
    match = matches.create(player("ana", level=2), {})
    store.transact(MATCHES, match["id"], lambda doc: {"levelMax": None})
    assert [m["id"] for m in matches.search(level=7)] == [match["id"]]


def test_search_is_capped(store, profiles, player):
    from padel_api.matches import MatchService

    service = MatchService(store, profiles, list_limit=3)
    uid = player("ana")
    for _ in range(5):
        service.create(uid, {})
    assert len(service.search()) == 3
    assert len(service.search(level=4)) == 3


def test_search_limit_counts_only_open_matches(store, profiles, player):
    from padel_api.matches import MatchService

    service = MatchService(store, profiles, list_limit=3)
    open_match = service.create(player("ana"), {"mode": "2v2"})
    for i in range(3):
        full = service.create(player(f"host{i}"), {"mode": "1v1"})
        service.join(full["id"], player(f"guest{i}"))

    assert [m["id"] for m in service.search()] == [open_match["id"]]
    assert [m["id"] for m in service.search(level=4)] == [open_match["id"]]


def test_mine_merges_created_and_joined(matches, player):
    own = matches.create(player("ana"), {})
    other = matches.create(player("bea"), {})
    matches.create(player("cris"), {})
    matches.join(other["id"], "ana")

    assert [m["id"] for m in matches.mine("ana")] == [other["id"], own["id"]]


def test_available_excludes_own_and_joined(matches, player):
    own = matches.create(player("ana"), {})
    joined = matches.create(player("bea"), {})
    free = matches.create(player("cris"), {})
    matches.join(joined["id"], "ana")

    assert [m["id"] for m in matches.available("ana")] == [free["id"]]
    assert {m["id"] for m in matches.open_matches()} == {own["id"], joined["id"], free["id"]}
