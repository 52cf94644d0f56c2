"""
Friendly match views: period filter, year options and head-to-head summary.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Iterable

from squashleague.models import FriendlyMatch, MatchStatus, User, as_utc, utc_now


class Period(str, Enum):
    MONTH = "month"
    YEAR = "year"
    CUSTOM = "custom"


@dataclass
class FriendlySummary:
    """Head-to-head totals from the current user's side. Confirmed matches only."""
    opponent_name: str = ""
    matches: int = 0
    wins: int = 0
    losses: int = 0
    sets_won: int = 0
    sets_lost: int = 0
    points_won: int = 0
    points_lost: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "opponent_name": self.opponent_name,
            "matches": self.matches,
            "wins": self.wins,
            "losses": self.losses,
            "sets_won": self.sets_won,
            "sets_lost": self.sets_lost,
            "points_won": self.points_won,
            "points_lost": self.points_lost,
        }


def match_in_period(
    match: FriendlyMatch,
    period: str,
    month: int = 0,
    year: int = 0,
    now: datetime | None = None,
) -> bool:
    """
    month (default): same calendar month as now. year: same year as now.
    custom: the given month/year; out-of-range values fall back to now's.
    """
    now = now or utc_now()
    played = as_utc(match.played_at or match.created_at)
    if played is None:
        return False
    if period == Period.YEAR.value:
        return played.year == now.year
    if period == Period.CUSTOM.value:
        if not 1 <= month <= 12:
            month = now.month
        if year < 1:
            year = now.year
        return played.year == year and played.month == month
    return played.year == now.year and played.month == now.month


def year_options(matches: Iterable[FriendlyMatch], current_year: int) -> list[int]:
    """Distinct years with matches plus current_year, newest first."""
    years = {current_year}
    for m in matches:
        played = as_utc(m.played_at or m.created_at)
        if played is not None:
            years.add(played.year)
    return sorted(years, reverse=True)


def filter_friendly_matches(
    matches: Iterable[FriendlyMatch],
    period: str = Period.MONTH.value,
    month: int = 0,
    year: int = 0,
    opponent_id: str = "",
    now: datetime | None = None,
) -> list[FriendlyMatch]:
    now = now or utc_now()
    out = []
    for m in matches:
        if not match_in_period(m, period, month, year, now):
            continue
        if opponent_id and opponent_id not in (m.player_a_id, m.player_b_id):
            continue
        out.append(m)
    return out


def build_friendly_summary(
    current_user_id: str,
    opponent_name: str,
    matches: Iterable[FriendlyMatch],
) -> FriendlySummary:
    summary = FriendlySummary(opponent_name=opponent_name)
    for m in matches:
        if m.status != MatchStatus.CONFIRMED.value:
            continue
        summary.matches += 1
        won = lost = 0
        for s in m.sets:
            mine, theirs = (s.a, s.b) if m.player_a_id == current_user_id else (s.b, s.a)
            summary.points_won += mine
            summary.points_lost += theirs
            if mine > theirs:
                won += 1
            elif theirs > mine:
                lost += 1
        summary.sets_won += won
        summary.sets_lost += lost
        if won > lost:
            summary.wins += 1
        elif lost > won:
            summary.losses += 1
    return summary


def opponents_for_user(users: Iterable[User], user_id: str) -> list[User]:
    return [u for u in users if u.id != user_id]


def search_opponents(users: Iterable[User], query: str, exclude_user_id: str) -> list[User]:
    """Case-insensitive substring match on full name or email. Blank query -> []."""
    needle = query.strip().lower()
    if not needle:
        return []
    return [
        u for u in opponents_for_user(users, exclude_user_id)
        if needle in u.full_name.lower() or needle in u.email.lower()
    ]
