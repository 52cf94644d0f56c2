"""
Volatile in-memory store.
All entity maps sit behind one reader/writer lock: readers run concurrently,
writers are exclusive. Entities are copied on the way in and out.
"""
from __future__ import annotations

import copy
import logging
import threading
import uuid
from contextlib import contextmanager
from typing import Iterator

from squashleague.errors import DuplicateEmailError, NotFoundError, ValidationError
from squashleague.models import (
    FriendlyMatch,
    JoinRequestStatus,
    League,
    LeagueAdminRole,
    LeagueJoinRequest,
    Match,
    Report,
    ReportStatus,
    User,
    UserRole,
    enum_value,
    utc_now,
)
from squashleague.persistence.store import email_key, normalise_timestamps, sort_newest_first, sort_users

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """Many readers or one writer. Writers wait for active readers to drain."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class MemoryStore:
    """Map-based Store. Seed with squashleague.persistence.seed.seed_data."""

    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._users: dict[str, User] = {}
        self._leagues: dict[str, League] = {}
        self._join_requests: dict[str, LeagueJoinRequest] = {}
        self._matches: dict[str, Match] = {}
        self._friendlies: dict[str, FriendlyMatch] = {}
        self._reports: dict[str, Report] = {}

    def close(self) -> None:
        return None

    # ---------- Users ----------

    def list_users(self) -> list[User]:
        with self._lock.read():
            users = [copy.deepcopy(u) for u in self._users.values()]
        return sort_users(users)

    def get_user(self, user_id: str) -> User | None:
        with self._lock.read():
            u = self._users.get(user_id)
            return copy.deepcopy(u) if u is not None else None

    def get_user_by_email(self, email: str) -> User | None:
        needle = email_key(email)
        with self._lock.read():
            for u in self._users.values():
                if email_key(u.email) == needle:
                    return copy.deepcopy(u)
        return None

    def create_user(self, user: User) -> User:
        user = copy.deepcopy(user)
        if not user.email.strip():
            raise ValidationError("email is required")
        if not user.id:
            user.id = str(uuid.uuid4())
        user.role = enum_value(user.role) if user.role else UserRole.USER.value
        user.skill = enum_value(user.skill)
        needle = email_key(user.email)
        with self._lock.write():
            for existing in self._users.values():
                if email_key(existing.email) == needle:
                    raise DuplicateEmailError("email already exists")
            self._users[user.id] = user
        return copy.deepcopy(user)

    # ---------- Leagues ----------

    def list_leagues(self) -> list[League]:
        with self._lock.read():
            leagues = [copy.deepcopy(l) for l in self._leagues.values()]
        return sort_newest_first(leagues)

    def get_league(self, league_id: str) -> League | None:
        with self._lock.read():
            l = self._leagues.get(league_id)
            return copy.deepcopy(l) if l is not None else None

    def create_league(self, league: League) -> League:
        league = normalise_timestamps(copy.deepcopy(league))
        if not league.id:
            league.id = str(uuid.uuid4())
        if league.created_at is None:
            league.created_at = utc_now()
        league.admin_roles = {uid: enum_value(r) for uid, r in (league.admin_roles or {}).items()}
        league.player_ids = list(league.player_ids or [])
        league.status = enum_value(league.status)
        with self._lock.write():
            self._leagues[league.id] = league
        return copy.deepcopy(league)

    def update_league(self, league: League) -> None:
        with self._lock.write():
            if league.id not in self._leagues:
                raise NotFoundError("league not found")
            self._leagues[league.id] = normalise_timestamps(copy.deepcopy(league))

    def add_player_to_league(self, league_id: str, user_id: str) -> None:
        with self._lock.write():
            league = self._require_league(league_id)
            if user_id not in league.player_ids:
                league.player_ids.append(user_id)

    def add_admin_to_league(self, league_id: str, user_id: str, role: str) -> None:
        role = enum_value(role)
        with self._lock.write():
            league = self._require_league(league_id)
            league.admin_roles[user_id] = role
            if role == LeagueAdminRole.ADMIN_PLAYER.value and user_id not in league.player_ids:
                league.player_ids.append(user_id)

    def update_admin_role(self, league_id: str, user_id: str, role: str) -> None:
        role = enum_value(role)
        with self._lock.write():
            league = self._require_league(league_id)
            if user_id not in league.admin_roles:
                raise NotFoundError("admin not found")
            league.admin_roles[user_id] = role
            if role == LeagueAdminRole.ADMIN_PLAYER.value and user_id not in league.player_ids:
                league.player_ids.append(user_id)

    def remove_admin_from_league(self, league_id: str, user_id: str) -> None:
        with self._lock.write():
            league = self._require_league(league_id)
            if user_id not in league.admin_roles:
                raise NotFoundError("admin not found")
            del league.admin_roles[user_id]

    def _require_league(self, league_id: str) -> League:
        # caller holds the lock
        league = self._leagues.get(league_id)
        if league is None:
            raise NotFoundError("league not found")
        return league

    # ---------- Join requests ----------

    def create_join_request(self, request: LeagueJoinRequest) -> LeagueJoinRequest:
        request = normalise_timestamps(copy.deepcopy(request))
        if not request.id:
            request.id = str(uuid.uuid4())
        if request.created_at is None:
            request.created_at = utc_now()
        request.status = enum_value(request.status) if request.status else JoinRequestStatus.PENDING.value
        with self._lock.write():
            self._require_league(request.league_id)
            self._join_requests[request.id] = request
        return copy.deepcopy(request)

    def list_join_requests(self, league_id: str) -> list[LeagueJoinRequest]:
        with self._lock.read():
            requests = [copy.deepcopy(r) for r in self._join_requests.values() if r.league_id == league_id]
        return sort_newest_first(requests)

    def get_join_request(self, request_id: str) -> LeagueJoinRequest | None:
        with self._lock.read():
            r = self._join_requests.get(request_id)
            return copy.deepcopy(r) if r is not None else None

    def update_join_request(self, request: LeagueJoinRequest) -> None:
        with self._lock.write():
            if request.id not in self._join_requests:
                raise NotFoundError("join request not found")
            self._join_requests[request.id] = normalise_timestamps(copy.deepcopy(request))

    def has_pending_join_request(self, league_id: str, user_id: str) -> bool:
        with self._lock.read():
            return any(
                r.league_id == league_id
                and r.user_id == user_id
                and r.status == JoinRequestStatus.PENDING.value
                for r in self._join_requests.values()
            )

    # ---------- League matches ----------

    def list_matches(self, league_id: str) -> list[Match]:
        with self._lock.read():
            matches = [copy.deepcopy(m) for m in self._matches.values() if m.league_id == league_id]
        return sort_newest_first(matches)

    def get_match(self, match_id: str) -> Match | None:
        with self._lock.read():
            m = self._matches.get(match_id)
            return copy.deepcopy(m) if m is not None else None

    def create_match(self, match: Match) -> Match:
        match = normalise_timestamps(copy.deepcopy(match))
        match.status = enum_value(match.status)
        if not match.id:
            match.id = str(uuid.uuid4())
        if match.created_at is None:
            match.created_at = utc_now()
        with self._lock.write():
            self._require_league(match.league_id)
            self._matches[match.id] = match
        return copy.deepcopy(match)

    def update_match(self, match: Match) -> None:
        with self._lock.write():
            if match.id not in self._matches:
                raise NotFoundError("match not found")
            self._matches[match.id] = normalise_timestamps(copy.deepcopy(match))

    # ---------- Friendly matches ----------

    def list_friendly_matches(self) -> list[FriendlyMatch]:
        with self._lock.read():
            matches = [copy.deepcopy(m) for m in self._friendlies.values()]
        return sort_newest_first(matches, attr="played_at")

    def get_friendly_match(self, match_id: str) -> FriendlyMatch | None:
        with self._lock.read():
            m = self._friendlies.get(match_id)
            return copy.deepcopy(m) if m is not None else None

    def create_friendly_match(self, match: FriendlyMatch) -> FriendlyMatch:
        match = normalise_timestamps(copy.deepcopy(match))
        match.status = enum_value(match.status)
        if not match.id:
            match.id = str(uuid.uuid4())
        if match.created_at is None:
            match.created_at = utc_now()
        if match.played_at is None:
            match.played_at = match.created_at
        with self._lock.write():
            self._friendlies[match.id] = match
        return copy.deepcopy(match)

    def update_friendly_match(self, match: FriendlyMatch) -> None:
        with self._lock.write():
            if match.id not in self._friendlies:
                raise NotFoundError("friendly match not found")
            self._friendlies[match.id] = normalise_timestamps(copy.deepcopy(match))

    # ---------- Reports ----------

    def list_reports(self) -> list[Report]:
        with self._lock.read():
            reports = [copy.deepcopy(r) for r in self._reports.values()]
        return sort_newest_first(reports)

    def create_report(self, report: Report) -> Report:
        report = normalise_timestamps(copy.deepcopy(report))
        if not report.id:
            report.id = str(uuid.uuid4())
        if report.created_at is None:
            report.created_at = utc_now()
        report.status = enum_value(report.status) if report.status else ReportStatus.OPEN.value
        report.type = enum_value(report.type)
        with self._lock.write():
            self._reports[report.id] = report
        return copy.deepcopy(report)
