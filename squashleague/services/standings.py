"""
League standings from confirmed matches.

Points per match: more sets won -> 3, fewer -> 1, equal set counts -> 2 each.
Order: points, then set difference, then score-point difference (all
descending); remaining ties keep the order of the players passed in.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from squashleague.models import Match, MatchStatus, User

WIN_POINTS = 3
LOSS_POINTS = 1
DRAW_POINTS = 2


@dataclass
class StandingEntry:
    player: User
    points: int = 0
    matches: int = 0
    wins: int = 0
    losses: int = 0
    draws: int = 0
    sets_won: int = 0
    sets_lost: int = 0
    points_won: int = 0
    points_lost: int = 0

    @property
    def set_difference(self) -> int:
        return self.sets_won - self.sets_lost

    @property
    def point_difference(self) -> int:
        return self.points_won - self.points_lost

    def to_dict(self) -> dict[str, Any]:
        return {
            "player_id": self.player.id,
            "player_name": self.player.full_name,
            "points": self.points,
            "matches": self.matches,
            "wins": self.wins,
            "losses": self.losses,
            "draws": self.draws,
            "sets_won": self.sets_won,
            "sets_lost": self.sets_lost,
            "set_difference": self.set_difference,
            "points_won": self.points_won,
            "points_lost": self.points_lost,
            "point_difference": self.point_difference,
        }


def build_standings(players: Iterable[User], matches: Iterable[Match]) -> list[StandingEntry]:
    """
    One entry per distinct player, including players with no matches.
    Matches that are not confirmed, or involve a non-listed player, are ignored.
    """
    index: dict[str, StandingEntry] = {}
    for p in players:
        if p.id not in index:
            index[p.id] = StandingEntry(player=p)

    for m in matches:
        if m.status != MatchStatus.CONFIRMED.value:
            continue
        a = index.get(m.player_a_id)
        b = index.get(m.player_b_id)
        if a is None or b is None:
            continue
        a.matches += 1
        b.matches += 1
        sets_a = sets_b = 0
        for s in m.sets:
            a.points_won += s.a
            a.points_lost += s.b
            b.points_won += s.b
            b.points_lost += s.a
            if s.a > s.b:
                sets_a += 1
            elif s.b > s.a:
                sets_b += 1
        a.sets_won += sets_a
        a.sets_lost += sets_b
        b.sets_won += sets_b
        b.sets_lost += sets_a
        if sets_a > sets_b:
            a.points += WIN_POINTS
            b.points += LOSS_POINTS
            a.wins += 1
            b.losses += 1
        elif sets_b > sets_a:
            b.points += WIN_POINTS
            a.points += LOSS_POINTS
            b.wins += 1
            a.losses += 1
        else:
            a.points += DRAW_POINTS
            b.points += DRAW_POINTS
            a.draws += 1
            b.draws += 1

    # sorted() is stable: equal keys keep member order
    return sorted(
        index.values(),
        key=lambda e: (-e.points, -e.set_difference, -e.point_difference),
    )
