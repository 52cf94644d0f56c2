"""
Relational Store shared by the SQLite and PostgreSQL backends.
SQL is written once with '?' placeholders; the dialect rewrites and connects.
Composite columns go through persistence.codec only.
"""
from __future__ import annotations

import copy
import logging
import uuid
from contextlib import contextmanager
from typing import Any, Iterator, Protocol, Sequence

from squashleague.errors import BackendUnavailableError, DuplicateEmailError, NotFoundError, ValidationError
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
from squashleague.persistence.codec import (
    decode_admin_roles,
    decode_datetime,
    decode_player_ids,
    decode_sets,
    encode_admin_roles,
    encode_datetime,
    encode_player_ids,
    encode_sets,
)
from squashleague.persistence.store import email_key, normalise_timestamps, sort_newest_first, sort_users

logger = logging.getLogger(__name__)


class SQLDialect(Protocol):
    """Connection and driver specifics for one database engine."""
    name: str
    integrity_error: type[Exception]
    connection_error: type[Exception]

    def connect(self) -> Any: ...
    def sql(self, query: str) -> str: ...
    def apply_script(self, conn: Any, script: str, filename: str, applied_at: str) -> None: ...


_USER_COLS = "id, first_name, last_name, phone, email, password_hash, role, skill, avatar_url"
_LEAGUE_COLS = (
    "id, name, description, location, owner_id, admin_roles, player_ids, "
    "sets_per_match, start_date, end_date, status, created_at"
)
_JOIN_COLS = "id, league_id, user_id, status, decided_by, decided_at, created_at"
_MATCH_COLS = "id, league_id, player_a_id, player_b_id, sets_json, status, reported_by, confirmed_by, created_at"
_FRIENDLY_COLS = (
    "id, player_a_id, player_b_id, sets_json, status, reported_by, confirmed_by, played_at, created_at"
)
_REPORT_COLS = "id, user_id, type, title, description, status, created_at"


# ---------- Row mappers ----------


def _row_to_user(r: Any) -> User:
    return User(
        id=r["id"],
        first_name=r["first_name"] or "",
        last_name=r["last_name"] or "",
        phone=r["phone"] or "",
        email=r["email"],
        password_hash=r["password_hash"] or "",
        role=r["role"] or "",
        skill=r["skill"] or "",
        avatar_url=r["avatar_url"] or "",
    )


def _row_to_league(r: Any) -> League:
    return League(
        id=r["id"],
        name=r["name"] or "",
        description=r["description"] or "",
        location=r["location"] or "",
        owner_id=r["owner_id"] or "",
        admin_roles=decode_admin_roles(r["admin_roles"]),
        player_ids=decode_player_ids(r["player_ids"]),
        sets_per_match=r["sets_per_match"],
        start_date=decode_datetime(r["start_date"]),
        end_date=decode_datetime(r["end_date"]),
        status=r["status"] or "",
        created_at=decode_datetime(r["created_at"]),
    )


def _row_to_join_request(r: Any) -> LeagueJoinRequest:
    return LeagueJoinRequest(
        id=r["id"],
        league_id=r["league_id"],
        user_id=r["user_id"],
        status=r["status"],
        decided_by=r["decided_by"] or "",
        decided_at=decode_datetime(r["decided_at"]),
        created_at=decode_datetime(r["created_at"]),
    )


def _row_to_match(r: Any) -> Match:
    return Match(
        id=r["id"],
        league_id=r["league_id"],
        player_a_id=r["player_a_id"],
        player_b_id=r["player_b_id"],
        sets=decode_sets(r["sets_json"]),
        status=r["status"],
        reported_by=r["reported_by"] or "",
        confirmed_by=r["confirmed_by"] or "",
        created_at=decode_datetime(r["created_at"]),
    )


def _row_to_friendly(r: Any) -> FriendlyMatch:
    return FriendlyMatch(
        id=r["id"],
        player_a_id=r["player_a_id"],
        player_b_id=r["player_b_id"],
        sets=decode_sets(r["sets_json"]),
        status=r["status"],
        reported_by=r["reported_by"] or "",
        confirmed_by=r["confirmed_by"] or "",
        played_at=decode_datetime(r["played_at"]),
        created_at=decode_datetime(r["created_at"]),
    )


def _row_to_report(r: Any) -> Report:
    return Report(
        id=r["id"],
        user_id=r["user_id"],
        type=r["type"],
        title=r["title"] or "",
        description=r["description"] or "",
        status=r["status"],
        created_at=decode_datetime(r["created_at"]),
    )


# ---------- SQLStore ----------


class SQLStore:
    """
    Store over a DB-API connection per operation. The database serialises
    concurrent writers; league membership helpers are read-modify-write.
    """

    def __init__(self, dialect: SQLDialect) -> None:
        self._dialect = dialect

    @property
    def dialect_name(self) -> str:
        return self._dialect.name

    def close(self) -> None:
        return None

    @contextmanager
    def _conn(self) -> Iterator[Any]:
        try:
            conn = self._dialect.connect()
        except self._dialect.connection_error as e:
            raise BackendUnavailableError(f"{self._dialect.name}: {e}") from e
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _fetchall(self, query: str, args: Sequence[Any] = ()) -> list[Any]:
        with self._conn() as conn:
            cur = conn.cursor()
            try:
                cur.execute(self._dialect.sql(query), tuple(args))
                return list(cur.fetchall())
            finally:
                cur.close()

    def _fetchone(self, query: str, args: Sequence[Any] = ()) -> Any | None:
        rows = self._fetchall(query, args)
        return rows[0] if rows else None

    def _execute(self, query: str, args: Sequence[Any] = ()) -> int:
        """Run one write statement; returns affected row count."""
        with self._conn() as conn:
            cur = conn.cursor()
            try:
                cur.execute(self._dialect.sql(query), tuple(args))
                return cur.rowcount
            finally:
                cur.close()

    # ---------- Users ----------

    def list_users(self) -> list[User]:
        rows = self._fetchall(f"SELECT {_USER_COLS} FROM users")
        return sort_users([_row_to_user(r) for r in rows])

    def get_user(self, user_id: str) -> User | None:
        row = self._fetchone(f"SELECT {_USER_COLS} FROM users WHERE id = ?", (user_id,))
        return _row_to_user(row) if row is not None else None

    def get_user_by_email(self, email: str) -> User | None:
        row = self._fetchone(
            f"SELECT {_USER_COLS} FROM users WHERE email_key = ? LIMIT 1",
            (email_key(email),),
        )
        return _row_to_user(row) if row is not None else None

    def create_user(self, user: User) -> User:
        if not user.email.strip():
            raise ValidationError("email is required")
        uid = user.id or str(uuid.uuid4())
        role = enum_value(user.role) if user.role else UserRole.USER.value
        if self.get_user_by_email(user.email) is not None:
            raise DuplicateEmailError("email already exists")
        try:
            self._execute(
                f"INSERT INTO users ({_USER_COLS}, email_key) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    uid, user.first_name, user.last_name, user.phone, user.email,
                    user.password_hash, role, enum_value(user.skill), user.avatar_url,
                    email_key(user.email),
                ),
            )
        except self._dialect.integrity_error as e:
            if self.get_user_by_email(user.email) is not None:
                raise DuplicateEmailError("email already exists") from e
            raise
        return User(
            id=uid, first_name=user.first_name, last_name=user.last_name, phone=user.phone,
            email=user.email, password_hash=user.password_hash, role=role,
            skill=enum_value(user.skill), avatar_url=user.avatar_url,
        )

    # ---------- Leagues ----------

    def list_leagues(self) -> list[League]:
        rows = self._fetchall(f"SELECT {_LEAGUE_COLS} FROM leagues")
        return sort_newest_first([_row_to_league(r) for r in rows])

    def get_league(self, league_id: str) -> League | None:
        row = self._fetchone(f"SELECT {_LEAGUE_COLS} FROM leagues WHERE id = ?", (league_id,))
        return _row_to_league(row) if row is not None else None

    def create_league(self, league: League) -> League:
        league = normalise_timestamps(copy.copy(league))
        lid = league.id or str(uuid.uuid4())
        created_at = league.created_at or utc_now()
        admin_roles = {uid: enum_value(r) for uid, r in (league.admin_roles or {}).items()}
        player_ids = list(league.player_ids or [])
        self._execute(
            f"INSERT INTO leagues ({_LEAGUE_COLS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                lid, league.name, league.description, league.location, league.owner_id,
                encode_admin_roles(admin_roles), encode_player_ids(player_ids),
                league.sets_per_match, encode_datetime(league.start_date),
                encode_datetime(league.end_date), enum_value(league.status),
                encode_datetime(created_at),
            ),
        )
        return League(
            id=lid, name=league.name, description=league.description, location=league.location,
            owner_id=league.owner_id, admin_roles=admin_roles, player_ids=player_ids,
            sets_per_match=league.sets_per_match, start_date=league.start_date,
            end_date=league.end_date, status=enum_value(league.status), created_at=created_at,
        )

    def update_league(self, league: League) -> None:
        count = self._execute(
            "UPDATE leagues SET name = ?, description = ?, location = ?, owner_id = ?, admin_roles = ?, "
            "player_ids = ?, sets_per_match = ?, start_date = ?, end_date = ?, status = ?, created_at = ? "
            "WHERE id = ?",
            (
                league.name, league.description, league.location, league.owner_id,
                encode_admin_roles(league.admin_roles), encode_player_ids(league.player_ids),
                league.sets_per_match, encode_datetime(league.start_date),
                encode_datetime(league.end_date), enum_value(league.status),
                encode_datetime(league.created_at), league.id,
            ),
        )
        if count == 0:
            raise NotFoundError("league not found")

    def _require_league(self, league_id: str) -> League:
        league = self.get_league(league_id)
        if league is None:
            raise NotFoundError("league not found")
        return league

    def _insert_for_league(self, league_id: str, query: str, args: Sequence[Any]) -> None:
        """Insert a row that belongs to a league. Unknown league -> NotFoundError."""
        self._require_league(league_id)
        try:
            self._execute(query, args)
        except self._dialect.integrity_error as e:
            # league removed between the check and the insert (PostgreSQL foreign key)
            if self.get_league(league_id) is None:
                raise NotFoundError("league not found") from e
            raise

    def add_player_to_league(self, league_id: str, user_id: str) -> None:
        league = self._require_league(league_id)
        if user_id in league.player_ids:
            return
        league.player_ids.append(user_id)
        self.update_league(league)

    def add_admin_to_league(self, league_id: str, user_id: str, role: str) -> None:
        role = enum_value(role)
        league = self._require_league(league_id)
        league.admin_roles[user_id] = role
        if role == LeagueAdminRole.ADMIN_PLAYER.value and user_id not in league.player_ids:
            league.player_ids.append(user_id)
        self.update_league(league)

    def update_admin_role(self, league_id: str, user_id: str, role: str) -> None:
        role = enum_value(role)
        league = self._require_league(league_id)
        if user_id not in league.admin_roles:
            raise NotFoundError("admin not found")
        league.admin_roles[user_id] = role
        if role == LeagueAdminRole.ADMIN_PLAYER.value and user_id not in league.player_ids:
            league.player_ids.append(user_id)
        self.update_league(league)

    def remove_admin_from_league(self, league_id: str, user_id: str) -> None:
        league = self._require_league(league_id)
        if user_id not in league.admin_roles:
            raise NotFoundError("admin not found")
        del league.admin_roles[user_id]
        self.update_league(league)

    # ---------- Join requests ----------

    def create_join_request(self, request: LeagueJoinRequest) -> LeagueJoinRequest:
        request = normalise_timestamps(copy.copy(request))
        rid = request.id or str(uuid.uuid4())
        created_at = request.created_at or utc_now()
        status = enum_value(request.status) if request.status else JoinRequestStatus.PENDING.value
        self._insert_for_league(
            request.league_id,
            f"INSERT INTO league_join_requests ({_JOIN_COLS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                rid, request.league_id, request.user_id, status, request.decided_by,
                encode_datetime(request.decided_at), encode_datetime(created_at),
            ),
        )
        return LeagueJoinRequest(
            id=rid, league_id=request.league_id, user_id=request.user_id, status=status,
            decided_by=request.decided_by, decided_at=request.decided_at, created_at=created_at,
        )

    def list_join_requests(self, league_id: str) -> list[LeagueJoinRequest]:
        rows = self._fetchall(
            f"SELECT {_JOIN_COLS} FROM league_join_requests WHERE league_id = ?", (league_id,)
        )
        return sort_newest_first([_row_to_join_request(r) for r in rows])

    def get_join_request(self, request_id: str) -> LeagueJoinRequest | None:
        row = self._fetchone(f"SELECT {_JOIN_COLS} FROM league_join_requests WHERE id = ?", (request_id,))
        return _row_to_join_request(row) if row is not None else None

    def update_join_request(self, request: LeagueJoinRequest) -> None:
        count = self._execute(
            "UPDATE league_join_requests SET league_id = ?, user_id = ?, status = ?, decided_by = ?, "
            "decided_at = ?, created_at = ? WHERE id = ?",
            (
                request.league_id, request.user_id, enum_value(request.status), request.decided_by,
                encode_datetime(request.decided_at), encode_datetime(request.created_at), request.id,
            ),
        )
        if count == 0:
            raise NotFoundError("join request not found")

    def has_pending_join_request(self, league_id: str, user_id: str) -> bool:
        row = self._fetchone(
            "SELECT id FROM league_join_requests WHERE league_id = ? AND user_id = ? AND status = ? LIMIT 1",
            (league_id, user_id, JoinRequestStatus.PENDING.value),
        )
        return row is not None

    # ---------- League matches ----------

    def list_matches(self, league_id: str) -> list[Match]:
        rows = self._fetchall(f"SELECT {_MATCH_COLS} FROM matches WHERE league_id = ?", (league_id,))
        return sort_newest_first([_row_to_match(r) for r in rows])

    def get_match(self, match_id: str) -> Match | None:
        row = self._fetchone(f"SELECT {_MATCH_COLS} FROM matches WHERE id = ?", (match_id,))
        return _row_to_match(row) if row is not None else None

    def create_match(self, match: Match) -> Match:
        match = normalise_timestamps(copy.copy(match))
        mid = match.id or str(uuid.uuid4())
        created_at = match.created_at or utc_now()
        status = enum_value(match.status)
        self._insert_for_league(
            match.league_id,
            f"INSERT INTO matches ({_MATCH_COLS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                mid, match.league_id, match.player_a_id, match.player_b_id, encode_sets(match.sets),
                status, match.reported_by, match.confirmed_by, encode_datetime(created_at),
            ),
        )
        return Match(
            id=mid, league_id=match.league_id, player_a_id=match.player_a_id,
            player_b_id=match.player_b_id, sets=list(match.sets), status=status,
            reported_by=match.reported_by, confirmed_by=match.confirmed_by, created_at=created_at,
        )

    def update_match(self, match: Match) -> None:
        count = self._execute(
            "UPDATE matches SET league_id = ?, player_a_id = ?, player_b_id = ?, sets_json = ?, status = ?, "
            "reported_by = ?, confirmed_by = ?, created_at = ? WHERE id = ?",
            (
                match.league_id, match.player_a_id, match.player_b_id, encode_sets(match.sets),
                enum_value(match.status), match.reported_by, match.confirmed_by,
                encode_datetime(match.created_at), match.id,
            ),
        )
        if count == 0:
            raise NotFoundError("match not found")

    # ---------- Friendly matches ----------

    def list_friendly_matches(self) -> list[FriendlyMatch]:
        rows = self._fetchall(f"SELECT {_FRIENDLY_COLS} FROM friendly_matches")
        return sort_newest_first([_row_to_friendly(r) for r in rows], attr="played_at")

    def get_friendly_match(self, match_id: str) -> FriendlyMatch | None:
        row = self._fetchone(f"SELECT {_FRIENDLY_COLS} FROM friendly_matches WHERE id = ?", (match_id,))
        return _row_to_friendly(row) if row is not None else None

    def create_friendly_match(self, match: FriendlyMatch) -> FriendlyMatch:
        match = normalise_timestamps(copy.copy(match))
        mid = match.id or str(uuid.uuid4())
        created_at = match.created_at or utc_now()
        played_at = match.played_at or created_at
        status = enum_value(match.status)
        self._execute(
            f"INSERT INTO friendly_matches ({_FRIENDLY_COLS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                mid, match.player_a_id, match.player_b_id, encode_sets(match.sets), status,
                match.reported_by, match.confirmed_by, encode_datetime(played_at),
                encode_datetime(created_at),
            ),
        )
        return FriendlyMatch(
            id=mid, player_a_id=match.player_a_id, player_b_id=match.player_b_id,
            sets=list(match.sets), status=status, reported_by=match.reported_by,
            confirmed_by=match.confirmed_by, played_at=played_at, created_at=created_at,
        )

    def update_friendly_match(self, match: FriendlyMatch) -> None:
        count = self._execute(
            "UPDATE friendly_matches SET player_a_id = ?, player_b_id = ?, sets_json = ?, status = ?, "
            "reported_by = ?, confirmed_by = ?, played_at = ?, created_at = ? WHERE id = ?",
            (
                match.player_a_id, match.player_b_id, encode_sets(match.sets), enum_value(match.status),
                match.reported_by, match.confirmed_by, encode_datetime(match.played_at),
                encode_datetime(match.created_at), match.id,
            ),
        )
        if count == 0:
            raise NotFoundError("friendly match not found")

    # ---------- Reports ----------

    def list_reports(self) -> list[Report]:
        rows = self._fetchall(f"SELECT {_REPORT_COLS} FROM reports")
        return sort_newest_first([_row_to_report(r) for r in rows])

    def create_report(self, report: Report) -> Report:
        report = normalise_timestamps(copy.copy(report))
        rid = report.id or str(uuid.uuid4())
        created_at = report.created_at or utc_now()
        status = enum_value(report.status) if report.status else ReportStatus.OPEN.value
        self._execute(
            f"INSERT INTO reports ({_REPORT_COLS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                rid, report.user_id, enum_value(report.type), report.title, report.description,
                status, encode_datetime(created_at),
            ),
        )
        return Report(
            id=rid, user_id=report.user_id, type=enum_value(report.type), title=report.title,
            description=report.description, status=status, created_at=created_at,
        )
