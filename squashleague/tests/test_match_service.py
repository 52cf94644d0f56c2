"""
Tests for the match lifecycle: reporting, confirmation, rejection, guards.
"""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from squashleague.errors import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from squashleague.models import MatchStatus, SetScore
from squashleague.services.league_service import LeagueService
from squashleague.services.match_service import (
    MatchService,
    clamp_sets_count,
    clamp_sets_per_match,
    parse_sets,
)

SETS = [SetScore(11, 5), SetScore(11, 9), SetScore(11, 7)]


@pytest.fixture
def league(store, people):
    """Alice owns; bob and carol play; dave is an outsider."""
    svc = LeagueService(store)
    league = svc.create_league(people.alice, "Club Night", datetime(2024, 1, 1, tzinfo=timezone.utc))
    svc.add_player(people.alice, league.id, people.bob.id)
    svc.add_player(people.alice, league.id, people.carol.id)
    return store.get_league(league.id)


@pytest.fixture
def matches(store):
    return MatchService(store)


# ---------- Reporting ----------


def test_member_reports_pending_match(matches, league, people):
    m = matches.report_league_match(people.bob, league.id, people.bob.id, people.carol.id, SETS)
    assert m.status == MatchStatus.PENDING.value
    assert m.reported_by == people.bob.id
    assert m.confirmed_by == ""
    assert m.sets == SETS


def test_outsider_cannot_report(matches, league, people):
    with pytest.raises(ForbiddenError):
        matches.report_league_match(people.dave, league.id, people.dave.id, people.bob.id, SETS)


def test_super_admin_may_report_for_others(matches, league, people):
    m = matches.report_league_match(people.root, league.id, people.bob.id, people.carol.id, SETS)
    assert m.reported_by == people.root.id


def test_unknown_league(matches, people):
    with pytest.raises(NotFoundError):
        matches.report_league_match(people.bob, "nope", people.bob.id, people.carol.id, SETS)


def test_players_must_differ(matches, league, people):
    with pytest.raises(ValidationError):
        matches.report_league_match(people.alice, league.id, people.bob.id, people.bob.id, SETS)
    with pytest.raises(ValidationError):
        matches.report_league_match(people.alice, league.id, "", people.bob.id, SETS)


def test_member_must_be_player_a(matches, league, people):
    with pytest.raises(ValidationError):
        matches.report_league_match(people.bob, league.id, people.carol.id, people.bob.id, SETS)


def test_manager_may_report_any_pair(matches, league, people):
    m = matches.report_league_match(people.alice, league.id, people.carol.id, people.bob.id, SETS)
    assert (m.player_a_id, m.player_b_id) == (people.carol.id, people.bob.id)


def test_at_least_one_set(matches, league, people):
    with pytest.raises(ValidationError):
        matches.report_league_match(people.bob, league.id, people.bob.id, people.carol.id, [])


# ---------- Confirm / reject ----------


def test_opponent_confirms(matches, league, people, store):
    m = matches.report_league_match(people.bob, league.id, people.bob.id, people.carol.id, SETS)
    done = matches.confirm_league_match(people.carol, m.id)
    assert done.status == "confirmed"
    assert done.confirmed_by == people.carol.id
    assert store.get_match(m.id).status == "confirmed"


def test_reporter_cannot_confirm_own_result(matches, league, people, store):
    m = matches.report_league_match(people.bob, league.id, people.bob.id, people.carol.id, SETS)
    with pytest.raises(ForbiddenError):
        matches.confirm_league_match(people.bob, m.id)
    assert store.get_match(m.id).status == "pending"


def test_non_player_cannot_decide(matches, league, people, store):
    m = matches.report_league_match(people.alice, league.id, people.bob.id, people.carol.id, SETS)
    with pytest.raises(ForbiddenError):
        matches.confirm_league_match(people.dave, m.id)
    with pytest.raises(ForbiddenError):
        matches.reject_league_match(people.root, m.id)
    assert store.get_match(m.id).status == "pending"


def test_manager_reported_match_either_player_decides(matches, league, people):
    m = matches.report_league_match(people.alice, league.id, people.bob.id, people.carol.id, SETS)
    assert matches.confirm_league_match(people.bob, m.id).confirmed_by == people.bob.id


def test_reject_leaves_confirmed_by_empty(matches, league, people):
    m = matches.report_league_match(people.bob, league.id, people.bob.id, people.carol.id, SETS)
    done = matches.reject_league_match(people.carol, m.id)
    assert done.status == "rejected"
    assert done.confirmed_by == ""


def test_decision_is_final(matches, league, people, store):
    m = matches.report_league_match(people.bob, league.id, people.bob.id, people.carol.id, SETS)
    matches.confirm_league_match(people.carol, m.id)
    with pytest.raises(InvalidTransitionError):
        matches.reject_league_match(people.carol, m.id)
    with pytest.raises(ConflictError):
        matches.confirm_league_match(people.carol, m.id)
    got = store.get_match(m.id)
    assert (got.status, got.confirmed_by) == ("confirmed", people.carol.id)


def test_unknown_match(matches, people):
    with pytest.raises(NotFoundError):
        matches.confirm_league_match(people.bob, "nope")


# ---------- Friendlies ----------


def test_friendly_report_and_confirm(matches, people, store):
    played = datetime(2024, 5, 4, 18, 30, tzinfo=timezone.utc)
    fm = matches.report_friendly_match(people.alice, people.dave.id, SETS, played_at=played)
    assert fm.player_a_id == people.alice.id
    assert fm.status == "pending"
    assert fm.played_at == played
    done = matches.confirm_friendly_match(people.dave, fm.id)
    assert done.confirmed_by == people.dave.id
    assert store.get_friendly_match(fm.id).status == "confirmed"


def test_friendly_opponent_must_exist(matches, people):
    with pytest.raises(NotFoundError):
        matches.report_friendly_match(people.alice, "ghost", SETS)


def test_friendly_against_self(matches, people):
    with pytest.raises(ValidationError):
        matches.report_friendly_match(people.alice, people.alice.id, SETS)


def test_friendly_self_confirm_forbidden(matches, people):
    fm = matches.report_friendly_match(people.alice, people.bob.id, SETS)
    with pytest.raises(ForbiddenError):
        matches.confirm_friendly_match(people.alice, fm.id)
    with pytest.raises(ForbiddenError):
        matches.reject_friendly_match(people.carol, fm.id)
    assert matches.reject_friendly_match(people.bob, fm.id).status == "rejected"


def test_friendly_without_sets(matches, people):
    with pytest.raises(ValidationError):
        matches.report_friendly_match(people.alice, people.bob.id, [])


# ---------- Form helpers ----------


def test_parse_sets_skips_blank_and_bad_pairs():
    form = {
        "set_1_a": "11", "set_1_b": "5",
        "set_2_a": "", "set_2_b": "11",
        "set_3_a": "x", "set_3_b": "4",
        "set_4_a": " 9 ", "set_4_b": "11",
        "set_6_a": "11", "set_6_b": "0",
    }
    assert parse_sets(form, 5) == [SetScore(11, 5), SetScore(9, 11)]


def test_parse_sets_defaults_to_five_rows():
    form = {f"set_{i}_a": "11" for i in range(1, 8)} | {f"set_{i}_b": "3" for i in range(1, 8)}
    assert len(parse_sets(form, 0)) == 5


@pytest.mark.parametrize("raw,expected", [
    (None, 5), ("", 5), ("abc", 5), ("0", 5), ("-3", 5), ("1", 1), ("3", 3), ("9", 9), ("12", 9), (7, 7),
])
def test_clamp_sets_per_match(raw, expected):
    assert clamp_sets_per_match(raw) == expected


def test_clamp_sets_count():
    assert clamp_sets_count("") == 5
    assert clamp_sets_count("15") == 15
    assert clamp_sets_count("50") == 20
