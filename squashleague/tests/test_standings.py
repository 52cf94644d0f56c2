"""
Tests for league standings: points, tiebreaks, filtering, determinism.
"""
from __future__ import annotations

import random
from datetime import datetime, timezone

from squashleague.models import Match, MatchStatus, SetScore, User
from squashleague.services.league_service import LeagueService
from squashleague.services.match_service import MatchService
from squashleague.services.standings import build_standings


def _u(uid: str) -> User:
    return User(id=uid, first_name=uid.upper(), email=f"{uid}@x.com")


def _m(a: str, b: str, sets: list[tuple[int, int]], status: str = MatchStatus.CONFIRMED.value) -> Match:
    return Match(
        id=f"{a}-{b}-{len(sets)}",
        player_a_id=a,
        player_b_id=b,
        sets=[SetScore(x, y) for x, y in sets],
        status=status,
    )


def _row(table, uid):
    return next(e for e in table if e.player.id == uid)


def test_four_set_win():
    table = build_standings([_u("a"), _u("b")], [_m("a", "b", [(11, 5), (9, 11), (11, 7), (11, 3)])])
    a, b = _row(table, "a"), _row(table, "b")
    assert (a.points, a.sets_won, a.sets_lost, a.points_won, a.points_lost) == (3, 3, 1, 42, 26)
    assert (b.points, b.sets_won, b.sets_lost, b.points_won, b.points_lost) == (1, 1, 3, 26, 42)
    assert a.matches == b.matches == 1
    assert (a.wins, b.losses) == (1, 1)
    assert [e.player.id for e in table] == ["a", "b"]


def test_players_without_matches_are_listed():
    table = build_standings([_u("a"), _u("b"), _u("c")], [_m("a", "b", [(11, 1)])])
    c = _row(table, "c")
    assert (c.points, c.matches, c.sets_won, c.points_won) == (0, 0, 0, 0)
    assert len(table) == 3


def test_only_confirmed_matches_count():
    matches = [
        _m("a", "b", [(11, 1)], MatchStatus.PENDING.value),
        _m("a", "b", [(11, 2), (11, 2)], MatchStatus.REJECTED.value),
        _m("b", "a", [(11, 4), (11, 4), (11, 4)]),
    ]
    table = build_standings([_u("a"), _u("b")], matches)
    assert _row(table, "b").points == 3
    assert _row(table, "a").points == 1
    assert _row(table, "a").matches == 1


def test_matches_with_non_members_are_ignored():
    table = build_standings([_u("a")], [_m("a", "stranger", [(11, 0)])])
    assert _row(table, "a").matches == 0


def test_level_set_counts_for_neither_side():
    table = build_standings([_u("a"), _u("b")], [_m("a", "b", [(11, 9), (10, 10), (5, 11)])])
    a, b = _row(table, "a"), _row(table, "b")
    assert (a.sets_won, a.sets_lost) == (1, 1)
    assert (b.sets_won, b.sets_lost) == (1, 1)


def test_equal_set_counts_is_a_draw():
    table = build_standings([_u("a"), _u("b")], [_m("a", "b", [(11, 9), (5, 11)])])
    a, b = _row(table, "a"), _row(table, "b")
    assert a.points == b.points == 2
    assert a.draws == b.draws == 1
    assert a.wins == a.losses == 0


def test_tiebreak_set_then_point_difference():
    players = [_u("a"), _u("b"), _u("c"), _u("d")]
    matches = [
        # a and b both win once and lose once; a has the better set difference
        _m("a", "c", [(11, 0), (11, 0), (11, 0)]),
        _m("d", "a", [(11, 9), (11, 9), (9, 11), (11, 9)]),
        _m("b", "d", [(11, 9), (9, 11), (11, 9), (11, 9)]),
        _m("c", "b", [(11, 9), (11, 9), (9, 11), (11, 9)]),
    ]
    table = build_standings(players, matches)
    a, b = _row(table, "a"), _row(table, "b")
    assert a.points == b.points
    assert a.set_difference > b.set_difference
    order = [e.player.id for e in table]
    assert order.index("a") < order.index("b")


def test_remaining_ties_keep_member_order():
    players = [_u("z"), _u("y"), _u("x")]
    table = build_standings(players, [])
    assert [e.player.id for e in table] == ["z", "y", "x"]


def test_duplicate_players_listed_once():
    table = build_standings([_u("a"), _u("a"), _u("b")], [])
    assert [e.player.id for e in table] == ["a", "b"]


def test_standings_are_deterministic():
    rng = random.Random(7)
    players = [_u(f"p{i}") for i in range(8)]
    matches = []
    for i in range(60):
        a, b = rng.sample([p.id for p in players], 2)
        sets = [(rng.randint(0, 11), rng.randint(0, 11)) for _ in range(rng.randint(1, 5))]
        m = _m(a, b, sets)
        m.id = f"m{i}"
        matches.append(m)
    first = [e.to_dict() for e in build_standings(players, matches)]
    second = [e.to_dict() for e in build_standings(players, matches)]
    assert first == second


def test_league_standings_from_store(store, people):
    leagues = LeagueService(store)
    matches = MatchService(store)
    league = leagues.create_league(people.alice, "Ladder", datetime(2024, 1, 1, tzinfo=timezone.utc))
    leagues.add_player(people.alice, league.id, people.bob.id)
    leagues.add_player(people.alice, league.id, people.carol.id)
    sets = [SetScore(11, 5), SetScore(9, 11), SetScore(11, 7), SetScore(11, 3)]
    m = matches.report_league_match(people.bob, league.id, people.bob.id, people.carol.id, sets)
    matches.confirm_league_match(people.carol, m.id)
    # still pending, must not count
    matches.report_league_match(people.bob, league.id, people.bob.id, people.alice.id, sets)

    table = leagues.standings(league.id)
    assert [e.player.id for e in table] == [people.bob.id, people.carol.id, people.alice.id]
    assert [e.points for e in table] == [3, 1, 0]
    assert leagues.standings(league.id)[0].to_dict() == table[0].to_dict()
