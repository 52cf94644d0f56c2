"""
Data models for the squash league backend.
Domain objects only; no persistence or API logic.

Users report their own results; a match only counts once the other player
confirms it. Leagues hold members and per-league admin roles by user id.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Aware UTC datetime. Naive values are taken to be UTC already."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def enum_value(value: Any) -> str:
    """Plain string for an Enum member or an already-plain value."""
    return str(getattr(value, "value", value))


# ---------- User role / skill ----------
class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class SkillLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    PRO = "pro"


# ---------- Match status (state machine) ----------
class MatchStatus(str, Enum):
    """Match lifecycle: pending → confirmed | rejected. Scheduled is reserved."""
    SCHEDULED = "scheduled"
    PENDING = "pending"      # Reported, waiting for the other player
    CONFIRMED = "confirmed"  # Counts towards standings
    REJECTED = "rejected"    # Disputed, ignored


# ---------- League ----------
class LeagueStatus(str, Enum):
    UPCOMING = "upcoming"
    ACTIVE = "active"
    FINISHED = "finished"


class LeagueAdminRole(str, Enum):
    """Per-league admin role. admin-player also plays in the league."""
    ADMIN_PLAYER = "admin-player"
    MODERATOR = "moderator"


class JoinRequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# ---------- Report ----------
class ReportType(str, Enum):
    BUG = "bug"
    FEATURE = "feature"


class ReportStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


# ---------- User ----------
@dataclass
class User:
    """
    A registered player. Email is unique case-insensitively.
    password_hash is never exposed through to_dict.
    """
    id: str = ""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    password_hash: str = ""
    role: str = ""  # UserRole value; store fills "user" when empty
    skill: str = SkillLevel.BEGINNER.value
    phone: str = ""
    avatar_url: str = ""

    @property
    def full_name(self) -> str:
        first = self.first_name.strip()
        last = self.last_name.strip()
        if not first:
            return last
        if not last:
            return first
        return f"{first} {last}"

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "email": self.email,
            "role": self.role,
            "skill": self.skill,
            "phone": self.phone,
            "avatar_url": self.avatar_url,
        }


# ---------- SetScore ----------
@dataclass(frozen=True)
class SetScore:
    """Points for player A and player B in one set."""
    a: int
    b: int

    def to_dict(self) -> dict[str, int]:
        return {"a": self.a, "b": self.b}


# ---------- League ----------
@dataclass
class League:
    """
    A competition. owner_id is always a manager, whether or not it appears
    in admin_roles. player_ids has set semantics; insertion order is kept.
    """
    id: str = ""
    name: str = ""
    description: str = ""
    location: str = ""
    owner_id: str = ""
    admin_roles: dict[str, str] = field(default_factory=dict)  # user_id -> LeagueAdminRole value
    player_ids: list[str] = field(default_factory=list)
    sets_per_match: int = 5
    start_date: datetime | None = None
    end_date: datetime | None = None
    status: str = LeagueStatus.ACTIVE.value
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "location": self.location,
            "owner_id": self.owner_id,
            "admin_roles": dict(self.admin_roles),
            "player_ids": list(self.player_ids),
            "sets_per_match": self.sets_per_match,
            "start_date": _iso(self.start_date),
            "end_date": _iso(self.end_date),
            "status": self.status,
            "created_at": _iso(self.created_at),
        }


# ---------- Match ----------
@dataclass
class Match:
    """
    A league match reported by one user. confirmed_by is "" until the
    opponent confirms; rejection leaves it empty.
    """
    id: str = ""
    league_id: str = ""
    player_a_id: str = ""
    player_b_id: str = ""
    sets: list[SetScore] = field(default_factory=list)
    status: str = MatchStatus.PENDING.value
    reported_by: str = ""
    confirmed_by: str = ""
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "league_id": self.league_id,
            "player_a_id": self.player_a_id,
            "player_b_id": self.player_b_id,
            "sets": [s.to_dict() for s in self.sets],
            "status": self.status,
            "reported_by": self.reported_by,
            "confirmed_by": self.confirmed_by,
            "created_at": _iso(self.created_at),
        }


# ---------- FriendlyMatch ----------
@dataclass
class FriendlyMatch:
    """Player-to-player match outside any league. played_at drives period filters."""
    id: str = ""
    player_a_id: str = ""
    player_b_id: str = ""
    sets: list[SetScore] = field(default_factory=list)
    status: str = MatchStatus.PENDING.value
    reported_by: str = ""
    confirmed_by: str = ""
    played_at: datetime | None = None
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "player_a_id": self.player_a_id,
            "player_b_id": self.player_b_id,
            "sets": [s.to_dict() for s in self.sets],
            "status": self.status,
            "reported_by": self.reported_by,
            "confirmed_by": self.confirmed_by,
            "played_at": _iso(self.played_at),
            "created_at": _iso(self.created_at),
        }


# ---------- LeagueJoinRequest ----------
@dataclass
class LeagueJoinRequest:
    id: str = ""
    league_id: str = ""
    user_id: str = ""
    status: str = JoinRequestStatus.PENDING.value
    decided_by: str = ""
    decided_at: datetime | None = None
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "league_id": self.league_id,
            "user_id": self.user_id,
            "status": self.status,
            "decided_by": self.decided_by,
            "decided_at": _iso(self.decided_at),
            "created_at": _iso(self.created_at),
        }


# ---------- Report ----------
@dataclass
class Report:
    """Bug or feature report. Append-only."""
    id: str = ""
    user_id: str = ""
    type: str = ReportType.BUG.value
    title: str = ""
    description: str = ""
    status: str = ""  # ReportStatus value; store fills "open" when empty
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "created_at": _iso(self.created_at),
        }
