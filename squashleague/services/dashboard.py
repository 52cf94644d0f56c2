"""
Dashboard views for the signed-in user: league matches waiting on a
decision, recent league and friendly activity, and join requests in the
leagues they manage.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable

from squashleague.models import (
    FriendlyMatch,
    JoinRequestStatus,
    League,
    LeagueJoinRequest,
    Match,
    MatchStatus,
    User,
    as_utc,
)
from squashleague.persistence.store import Store
from squashleague.services.league_service import LeagueService
from squashleague.services.match_service import can_decide
from squashleague.services.permissions import can_manage_league

RECENT_LIMIT = 10

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)
_RECENT_STATUSES = (MatchStatus.PENDING.value, MatchStatus.CONFIRMED.value)


@dataclass
class ActivityItem:
    """One match on the dashboard. league is None for friendlies."""
    match: Match | FriendlyMatch
    when: datetime | None
    can_decide: bool
    league: League | None = None

    @property
    def kind(self) -> str:
        return "friendly" if self.league is None else "league"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "league_id": self.league.id if self.league else None,
            "league_name": self.league.name if self.league else None,
            "when": self.when.isoformat() if self.when else None,
            "can_decide": self.can_decide,
            "match": self.match.to_dict(),
        }


@dataclass
class JoinRequestItem:
    league: League
    user: User
    request: LeagueJoinRequest

    def to_dict(self) -> dict[str, Any]:
        return {
            "league_id": self.league.id,
            "league_name": self.league.name,
            "user": self.user.to_dict(),
            "request": self.request.to_dict(),
        }


def _newest_first(items: Iterable[ActivityItem]) -> list[ActivityItem]:
    return sorted(items, key=lambda i: (i.when or _OLDEST, i.match.id), reverse=True)


class DashboardService:
    def __init__(self, store: Store) -> None:
        self._store = store

    def _league_items(self, user: User, statuses: tuple[str, ...]) -> list[ActivityItem]:
        """User's own matches in the leagues they play in or manage. Dated by report time."""
        items = []
        for league in LeagueService(self._store).leagues_for_user(user.id):
            for m in self._store.list_matches(league.id):
                if user.id not in (m.player_a_id, m.player_b_id) or m.status not in statuses:
                    continue
                pending = m.status == MatchStatus.PENDING.value
                items.append(ActivityItem(
                    match=m,
                    when=as_utc(m.created_at),
                    can_decide=pending and can_decide(m, user.id),
                    league=league,
                ))
        return items

    def _friendly_items(self, user: User) -> list[ActivityItem]:
        """Dated by when the match was played, falling back to report time."""
        items = []
        for m in self._store.list_friendly_matches():
            if user.id not in (m.player_a_id, m.player_b_id) or m.status not in _RECENT_STATUSES:
                continue
            pending = m.status == MatchStatus.PENDING.value
            items.append(ActivityItem(
                match=m,
                when=as_utc(m.played_at or m.created_at),
                can_decide=pending and can_decide(m, user.id),
            ))
        return items

    def pending_matches(self, user: User) -> list[ActivityItem]:
        """Pending league matches; ones the user can confirm come first, then newest."""
        items = _newest_first(self._league_items(user, (MatchStatus.PENDING.value,)))
        # stable: newest-first order survives inside each group
        return sorted(items, key=lambda i: not i.can_decide)

    def recent_activity(self, user: User, limit: int = RECENT_LIMIT) -> list[ActivityItem]:
        """Pending and confirmed league and friendly matches merged by time, newest first."""
        items = self._league_items(user, _RECENT_STATUSES) + self._friendly_items(user)
        merged = _newest_first(items)
        return merged[:limit] if limit > 0 else merged

    def join_requests(self, user: User) -> list[JoinRequestItem]:
        """Pending requests in every league the user may manage, newest first."""
        items = []
        for league in self._store.list_leagues():
            if not can_manage_league(league, user):
                continue
            for req in self._store.list_join_requests(league.id):
                if req.status != JoinRequestStatus.PENDING.value:
                    continue
                requester = self._store.get_user(req.user_id)
                if requester is None:
                    continue
                items.append(JoinRequestItem(league=league, user=requester, request=req))
        items.sort(key=lambda i: (as_utc(i.request.created_at) or _OLDEST, i.request.id), reverse=True)
        return items
