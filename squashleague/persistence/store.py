"""
Storage contract for squash league data.
No business logic, only read/write operations.

MemoryStore, SQLiteStore and PostgresStore all satisfy this protocol and must
return the same domain results for the same sequence of calls: same sort
orders, same errors, same default filling.
"""
from __future__ import annotations

import dataclasses
from datetime import datetime
from typing import Protocol, TypeVar, runtime_checkable

from squashleague.models import (
    FriendlyMatch,
    League,
    LeagueJoinRequest,
    Match,
    Report,
    User,
    as_utc,
)

_E = TypeVar("_E")


@runtime_checkable
class Store(Protocol):
    # Users
    def list_users(self) -> list[User]: ...
    def get_user(self, user_id: str) -> User | None: ...
    def get_user_by_email(self, email: str) -> User | None: ...
    def create_user(self, user: User) -> User: ...

    # Leagues
    def list_leagues(self) -> list[League]: ...
    def get_league(self, league_id: str) -> League | None: ...
    def create_league(self, league: League) -> League: ...
    def update_league(self, league: League) -> None: ...
    def add_player_to_league(self, league_id: str, user_id: str) -> None: ...
    def add_admin_to_league(self, league_id: str, user_id: str, role: str) -> None: ...
    def update_admin_role(self, league_id: str, user_id: str, role: str) -> None: ...
    def remove_admin_from_league(self, league_id: str, user_id: str) -> None: ...

    # Join requests
    def create_join_request(self, request: LeagueJoinRequest) -> LeagueJoinRequest: ...
    def list_join_requests(self, league_id: str) -> list[LeagueJoinRequest]: ...
    def get_join_request(self, request_id: str) -> LeagueJoinRequest | None: ...
    def update_join_request(self, request: LeagueJoinRequest) -> None: ...
    def has_pending_join_request(self, league_id: str, user_id: str) -> bool: ...

    # League matches
    def list_matches(self, league_id: str) -> list[Match]: ...
    def get_match(self, match_id: str) -> Match | None: ...
    def create_match(self, match: Match) -> Match: ...
    def update_match(self, match: Match) -> None: ...

    # Friendly matches
    def list_friendly_matches(self) -> list[FriendlyMatch]: ...
    def get_friendly_match(self, match_id: str) -> FriendlyMatch | None: ...
    def create_friendly_match(self, match: FriendlyMatch) -> FriendlyMatch: ...
    def update_friendly_match(self, match: FriendlyMatch) -> None: ...

    # Reports
    def list_reports(self) -> list[Report]: ...
    def create_report(self, report: Report) -> Report: ...

    def close(self) -> None: ...


# ---------- Shared ordering ----------
# Every backend sorts in Python with these keys so ties break the same way.


def sort_users(users: list[User]) -> list[User]:
    return sorted(users, key=lambda u: (u.full_name, u.id))


def sort_newest_first(items: list, attr: str = "created_at") -> list:
    """Descending by timestamp attr, ties by id descending. None sorts last."""
    with_ts = [x for x in items if getattr(x, attr) is not None]
    without_ts = [x for x in items if getattr(x, attr) is None]
    with_ts.sort(key=lambda x: (getattr(x, attr), x.id), reverse=True)
    without_ts.sort(key=lambda x: x.id, reverse=True)
    return with_ts + without_ts


def normalise_timestamps(entity: _E) -> _E:
    """Convert every datetime field of a model to aware UTC, in place."""
    for f in dataclasses.fields(entity):
        value = getattr(entity, f.name)
        if isinstance(value, datetime):
            setattr(entity, f.name, as_utc(value))
    return entity


def email_key(email: str) -> str:
    """Case-insensitive identity of an email address."""
    return email.strip().casefold()
