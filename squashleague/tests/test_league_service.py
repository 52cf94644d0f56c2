"""
Tests for league membership: creation, admin roles, join requests, ending.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from squashleague.errors import ForbiddenError, NotFoundError, ValidationError
from squashleague.models import LeagueStatus
from squashleague.services.league_service import LeagueService, league_status_for_dates

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


@pytest.fixture
def svc(store):
    return LeagueService(store)


@pytest.fixture
def league(svc, people):
    return svc.create_league(people.alice, "Club Night", NOW - timedelta(days=10), now=NOW)


# ---------- Create ----------


def test_owner_is_admin_player_and_member(league, people):
    assert league.owner_id == people.alice.id
    assert league.admin_roles == {people.alice.id: "admin-player"}
    assert league.player_ids == [people.alice.id]
    assert league.status == "active"
    assert league.sets_per_match == 5


def test_create_requires_name(svc, people):
    with pytest.raises(ValidationError):
        svc.create_league(people.alice, "   ", NOW)


def test_end_before_start_rejected(svc, people):
    with pytest.raises(ValidationError):
        svc.create_league(people.alice, "Backwards", NOW, NOW - timedelta(days=1))


def test_sets_per_match_clamped(svc, people):
    assert svc.create_league(people.alice, "Long", NOW, sets_per_match=15).sets_per_match == 9


@pytest.mark.parametrize("start,end,expected", [
    (NOW + timedelta(days=1), None, LeagueStatus.UPCOMING),
    (NOW - timedelta(days=1), None, LeagueStatus.ACTIVE),
    (NOW - timedelta(days=9), NOW - timedelta(days=1), LeagueStatus.FINISHED),
    (NOW - timedelta(days=9), NOW + timedelta(days=1), LeagueStatus.ACTIVE),
])
def test_status_from_dates(start, end, expected):
    assert league_status_for_dates(start, end, NOW) == expected


# ---------- Players / admins ----------


def test_manager_adds_player(svc, league, people):
    updated = svc.add_player(people.alice, league.id, people.bob.id)
    assert people.bob.id in updated.player_ids


def test_non_manager_cannot_add_player(svc, league, people):
    with pytest.raises(ForbiddenError):
        svc.add_player(people.bob, league.id, people.carol.id)


def test_super_admin_manages_any_league(svc, league, people):
    svc.add_player(people.root, league.id, people.carol.id)
    assert people.carol.id in svc.get_league(league.id).player_ids


def test_unknown_league(svc, people):
    with pytest.raises(NotFoundError):
        svc.add_player(people.alice, "nope", people.bob.id)


def test_grant_admin_player_adds_membership_once(svc, league, people):
    svc.grant_admin(people.alice, league.id, people.bob.id, "admin-player")
    svc.grant_admin(people.alice, league.id, people.bob.id, "admin-player")
    got = svc.get_league(league.id)
    assert got.player_ids.count(people.bob.id) == 1
    assert got.admin_roles[people.bob.id] == "admin-player"


def test_moderator_can_manage(svc, league, people):
    svc.grant_admin(people.alice, league.id, people.bob.id, "moderator")
    svc.add_player(people.bob, league.id, people.carol.id)
    got = svc.get_league(league.id)
    assert people.carol.id in got.player_ids
    assert people.bob.id not in got.player_ids


def test_invalid_role_rejected(svc, league, people):
    with pytest.raises(ValidationError):
        svc.grant_admin(people.alice, league.id, people.bob.id, "overlord")


def test_owner_role_is_immutable(svc, league, people):
    svc.grant_admin(people.alice, league.id, people.bob.id, "admin-player")
    with pytest.raises(ValidationError):
        svc.change_admin_role(people.bob, league.id, people.alice.id, "moderator")
    with pytest.raises(ValidationError):
        svc.revoke_admin(people.bob, league.id, people.alice.id)
    assert svc.get_league(league.id).admin_roles[people.alice.id] == "admin-player"


def test_change_role_of_non_admin_not_found(svc, league, people):
    with pytest.raises(NotFoundError):
        svc.change_admin_role(people.alice, league.id, people.carol.id, "moderator")


def test_revoke_admin_keeps_membership(svc, league, people):
    svc.grant_admin(people.alice, league.id, people.bob.id, "admin-player")
    got = svc.revoke_admin(people.alice, league.id, people.bob.id)
    assert people.bob.id not in got.admin_roles
    assert people.bob.id in got.player_ids


# ---------- Join requests ----------


def test_duplicate_join_request_is_single_row(svc, league, people, store):
    first = svc.request_to_join(people.bob, league.id)
    second = svc.request_to_join(people.bob, league.id)
    assert second.id == first.id
    pending = [r for r in store.list_join_requests(league.id) if r.user_id == people.bob.id]
    assert len(pending) == 1


def test_member_request_is_noop(svc, league, people, store):
    assert svc.request_to_join(people.alice, league.id) is None
    assert store.list_join_requests(league.id) == []


def test_approve_adds_member(svc, league, people):
    req = svc.request_to_join(people.bob, league.id)
    done = svc.approve_join_request(people.alice, league.id, req.id, now=NOW)
    assert done.status == "approved"
    assert done.decided_by == people.alice.id
    assert done.decided_at == NOW
    assert people.bob.id in svc.get_league(league.id).player_ids


def test_reject_does_not_add_member(svc, league, people):
    req = svc.request_to_join(people.bob, league.id)
    done = svc.reject_join_request(people.alice, league.id, req.id)
    assert done.status == "rejected"
    assert done.decided_at is not None
    assert people.bob.id not in svc.get_league(league.id).player_ids


def test_request_can_be_decided_once(svc, league, people):
    req = svc.request_to_join(people.bob, league.id)
    svc.approve_join_request(people.alice, league.id, req.id)
    with pytest.raises(ValidationError):
        svc.reject_join_request(people.alice, league.id, req.id)


def test_request_from_other_league_not_found(svc, league, people):
    other = svc.create_league(people.carol, "Other", NOW)
    req = svc.request_to_join(people.bob, other.id)
    with pytest.raises(NotFoundError):
        svc.approve_join_request(people.alice, league.id, req.id)


def test_only_managers_decide_requests(svc, league, people):
    req = svc.request_to_join(people.bob, league.id)
    with pytest.raises(ForbiddenError):
        svc.approve_join_request(people.bob, league.id, req.id)


def test_new_request_after_rejection(svc, league, people):
    req = svc.request_to_join(people.bob, league.id)
    svc.reject_join_request(people.alice, league.id, req.id)
    again = svc.request_to_join(people.bob, league.id)
    assert again.id != req.id
    assert again.status == "pending"


# ---------- End / search ----------


def test_end_league(svc, league, people):
    ended = svc.end_league(people.alice, league.id, now=NOW)
    assert ended.status == "finished"
    assert ended.end_date == NOW
    again = svc.end_league(people.alice, league.id, now=NOW + timedelta(days=5))
    assert again.end_date == NOW


def test_end_league_requires_manager(svc, league, people):
    with pytest.raises(ForbiddenError):
        svc.end_league(people.dave, league.id)


def test_search_and_leagues_for_user(svc, league, people):
    svc.create_league(people.carol, "Weekend Cup", NOW, location="Squash Arena")
    assert [l.name for l in svc.search_leagues("arena")] == ["Weekend Cup"]
    assert len(svc.search_leagues("")) == 2
    assert [l.id for l in svc.leagues_for_user(people.alice.id)] == [league.id]
    assert svc.leagues_for_user("") == []
