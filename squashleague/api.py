"""
REST API for the squash league backend.
Thin wrappers around the services; domain errors map to HTTP status codes.
"""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager, contextmanager
from datetime import date, datetime, time, timezone
from typing import Any, AsyncGenerator, Generator

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field

from squashleague import errors
from squashleague.auth import PASSWORD_MIN_LENGTH, issue_token, token_user_id
from squashleague.config import StoreConfig
from squashleague.models import MatchStatus, SetScore, User, utc_now
from squashleague.persistence.factory import open_store
from squashleague.persistence.store import Store
from squashleague.services import DashboardService, LeagueService, MatchService, ReportService, UserService
from squashleague.services.friendly_stats import (
    Period,
    build_friendly_summary,
    filter_friendly_matches,
    opponents_for_user,
    search_opponents,
    year_options,
)
from squashleague.services.match_service import can_decide, clamp_sets_count, parse_sets
from squashleague.services.permissions import can_manage_league

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# ---------- Store lifecycle ----------

_store: Store | None = None


def set_store(store: Store | None) -> None:
    """Use this store for all requests. Call before the first request (tests, embedding)."""
    global _store
    _store = store


def get_store() -> Store:
    """Current store; opened from the environment on first use."""
    global _store
    if _store is None:
        load_dotenv(".env")
        load_dotenv(".env.local")
        _store = open_store(StoreConfig.from_env())
    return _store


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    get_store()
    yield
    if _store is not None:
        _store.close()


# ---------- Error mapping ----------

_STATUS_BY_ERROR: list[tuple[type[errors.SquashLeagueError], int]] = [
    (errors.NotFoundError, 404),
    (errors.ValidationError, 400),
    (errors.ForbiddenError, 403),
    (errors.ConflictError, 409),
]


def status_for(exc: errors.SquashLeagueError) -> int:
    for cls, status in _STATUS_BY_ERROR:
        if isinstance(exc, cls):
            return status
    return 500


@contextmanager
def domain_errors() -> Generator[None, None, None]:
    """Re-raise squashleague errors as HTTPException with the mapped status."""
    try:
        yield
    except errors.SquashLeagueError as e:
        raise HTTPException(status_code=status_for(e), detail=str(e)) from e


# ---------- FastAPI app ----------
app = FastAPI(
    title="Squash League API",
    description="Match reporting, standings and league membership",
    version="0.1.0",
    lifespan=lifespan,
)

security = HTTPBearer(auto_error=False)


# ---------- Request models ----------


class SignupRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH)
    password_confirm: str | None = Field(None, description="When sent, must repeat password")
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field("", max_length=50)
    skill: str = "beginner"


class LoginRequest(BaseModel):
    email: str
    password: str


class SetIn(BaseModel):
    a: int = Field(..., ge=0)
    b: int = Field(..., ge=0)


class CreateLeagueRequest(BaseModel):
    name: str = Field(..., max_length=200)
    description: str = ""
    location: str = ""
    sets_per_match: int | None = Field(None, description="1-9; defaults to 5")
    start_date: date
    end_date: date | None = None


class UserIdRequest(BaseModel):
    user_id: str


class AdminRequest(BaseModel):
    user_id: str
    role: str = Field(..., description="admin-player or moderator")


class AdminRoleRequest(BaseModel):
    role: str


class ReportMatchRequest(BaseModel):
    player_a_id: str
    player_b_id: str
    sets: list[SetIn] | None = None
    set_fields: dict[str, str] | None = Field(
        None, description="Form-style set_1_a/set_1_b... pairs; blank pairs are skipped"
    )


class ReportFriendlyRequest(BaseModel):
    opponent_id: str
    sets: list[SetIn] | None = None
    set_fields: dict[str, str] | None = None
    sets_count: int | None = None
    played_at: datetime | None = None


class CreateReportRequest(BaseModel):
    type: str = Field(..., description="bug or feature")
    title: str = Field(..., max_length=200)
    description: str = ""


# ---------- Auth dependencies ----------


def _get_current_user_id(credentials: HTTPAuthorizationCredentials | None = Depends(security)) -> str | None:
    if credentials is None:
        return None
    return token_user_id(credentials.credentials)


def _current_user(user_id: str | None = Depends(_get_current_user_id)) -> User:
    if not user_id:
        raise HTTPException(status_code=401, detail="Login required")
    user = get_store().get_user(user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="Unknown user")
    return user


def _as_utc(d: date) -> datetime:
    return datetime.combine(d, time.min, tzinfo=timezone.utc)


def _sets_from(body_sets: list[SetIn] | None, set_fields: dict[str, str] | None, max_sets: int) -> list[SetScore]:
    if body_sets:
        return [SetScore(s.a, s.b) for s in body_sets]
    if set_fields:
        return parse_sets(set_fields, max_sets)
    return []


def _match_dict(match, user: User) -> dict[str, Any]:
    out = match.to_dict()
    out["can_decide"] = match.status == MatchStatus.PENDING.value and can_decide(match, user.id)
    return out


# ---------- Users ----------


@app.post("/signup")
def signup(req: SignupRequest) -> dict[str, Any]:
    with domain_errors():
        user = UserService(get_store()).register(
            req.email,
            req.password,
            req.first_name,
            req.last_name,
            phone=req.phone,
            skill=req.skill,
            password_confirm=req.password_confirm,
        )
    return {"user": user.to_dict(), "token": issue_token(user)}


@app.post("/login")
def login(req: LoginRequest) -> dict[str, Any]:
    user = UserService(get_store()).authenticate(req.email, req.password)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return {"user": user.to_dict(), "token": issue_token(user)}


@app.get("/me")
def me(user: User = Depends(_current_user)) -> dict[str, Any]:
    return user.to_dict()


@app.get("/users")
def list_users(q: str = "", user: User = Depends(_current_user)) -> dict[str, Any]:
    """Opponents for the current user; with q, only name/email matches."""
    users = get_store().list_users()
    found = search_opponents(users, q, user.id) if q.strip() else opponents_for_user(users, user.id)
    return {"users": [u.to_dict() for u in found]}


# ---------- Dashboard ----------


@app.get("/dashboard")
def dashboard(user: User = Depends(_current_user)) -> dict[str, Any]:
    svc = DashboardService(get_store())
    return {
        "pending_matches": [i.to_dict() for i in svc.pending_matches(user)],
        "recent_activity": [i.to_dict() for i in svc.recent_activity(user)],
        "join_requests": [i.to_dict() for i in svc.join_requests(user)],
    }


@app.get("/dashboard/recent")
def dashboard_recent(
    limit: int = Query(10, ge=0, le=100, description="0 for no limit"),
    user: User = Depends(_current_user),
) -> dict[str, Any]:
    items = DashboardService(get_store()).recent_activity(user, limit)
    return {"items": [i.to_dict() for i in items]}


# ---------- Leagues ----------


@app.post("/leagues")
def create_league(req: CreateLeagueRequest, user: User = Depends(_current_user)) -> dict[str, Any]:
    with domain_errors():
        league = LeagueService(get_store()).create_league(
            user,
            req.name,
            _as_utc(req.start_date),
            _as_utc(req.end_date) if req.end_date else None,
            description=req.description,
            location=req.location,
            sets_per_match=req.sets_per_match,
        )
    return league.to_dict()


@app.get("/leagues")
def list_leagues(
    q: str = "",
    mine: bool = Query(False, description="Only leagues the user plays in or manages"),
    user_id: str | None = Depends(_get_current_user_id),
) -> dict[str, Any]:
    svc = LeagueService(get_store())
    if mine:
        if not user_id:
            raise HTTPException(status_code=401, detail="Login required")
        leagues = svc.leagues_for_user(user_id)
    else:
        leagues = svc.search_leagues(q)
    return {"leagues": [l.to_dict() for l in leagues]}


@app.get("/leagues/{league_id}")
def get_league(league_id: str, user: User = Depends(_current_user)) -> dict[str, Any]:
    store = get_store()
    svc = LeagueService(store)
    with domain_errors():
        league = svc.get_league(league_id)
        out = league.to_dict()
        out["players"] = [u.to_dict() for u in svc.league_players(league)]
        out["can_manage"] = can_manage_league(league, user)
        if out["can_manage"]:
            out["join_requests"] = [r.to_dict() for r in svc.list_join_requests(user, league_id)]
    return out


@app.post("/leagues/{league_id}/players")
def add_player(league_id: str, req: UserIdRequest, user: User = Depends(_current_user)) -> dict[str, Any]:
    with domain_errors():
        league = LeagueService(get_store()).add_player(user, league_id, req.user_id)
    return league.to_dict()


@app.post("/leagues/{league_id}/admins")
def add_admin(league_id: str, req: AdminRequest, user: User = Depends(_current_user)) -> dict[str, Any]:
    with domain_errors():
        league = LeagueService(get_store()).grant_admin(user, league_id, req.user_id, req.role)
    return league.to_dict()


@app.put("/leagues/{league_id}/admins/{admin_id}")
def update_admin(
    league_id: str, admin_id: str, req: AdminRoleRequest, user: User = Depends(_current_user)
) -> dict[str, Any]:
    with domain_errors():
        league = LeagueService(get_store()).change_admin_role(user, league_id, admin_id, req.role)
    return league.to_dict()


@app.delete("/leagues/{league_id}/admins/{admin_id}")
def remove_admin(league_id: str, admin_id: str, user: User = Depends(_current_user)) -> dict[str, Any]:
    with domain_errors():
        league = LeagueService(get_store()).revoke_admin(user, league_id, admin_id)
    return league.to_dict()


@app.post("/leagues/{league_id}/join")
def join_league(league_id: str, user: User = Depends(_current_user)) -> dict[str, Any]:
    with domain_errors():
        request = LeagueService(get_store()).request_to_join(user, league_id)
    if request is None:
        return {"league_id": league_id, "already_member": True, "request": None}
    return {"league_id": league_id, "already_member": False, "request": request.to_dict()}


@app.get("/leagues/{league_id}/join-requests")
def list_join_requests(league_id: str, user: User = Depends(_current_user)) -> dict[str, Any]:
    with domain_errors():
        requests = LeagueService(get_store()).list_join_requests(user, league_id)
    return {"requests": [r.to_dict() for r in requests]}


@app.post("/leagues/{league_id}/join-requests/{request_id}/approve")
def approve_join_request(league_id: str, request_id: str, user: User = Depends(_current_user)) -> dict[str, Any]:
    with domain_errors():
        request = LeagueService(get_store()).approve_join_request(user, league_id, request_id)
    return request.to_dict()


@app.post("/leagues/{league_id}/join-requests/{request_id}/reject")
def reject_join_request(league_id: str, request_id: str, user: User = Depends(_current_user)) -> dict[str, Any]:
    with domain_errors():
        request = LeagueService(get_store()).reject_join_request(user, league_id, request_id)
    return request.to_dict()


@app.post("/leagues/{league_id}/end")
def end_league(league_id: str, user: User = Depends(_current_user)) -> dict[str, Any]:
    with domain_errors():
        league = LeagueService(get_store()).end_league(user, league_id)
    return league.to_dict()


@app.get("/leagues/{league_id}/standings")
def get_league_standings(league_id: str) -> dict[str, Any]:
    with domain_errors():
        rows = LeagueService(get_store()).standings(league_id)
    return {"league_id": league_id, "standings": [r.to_dict() for r in rows]}


# ---------- League matches ----------


@app.get("/leagues/{league_id}/matches")
def list_league_matches(league_id: str, user: User = Depends(_current_user)) -> dict[str, Any]:
    with domain_errors():
        matches = MatchService(get_store()).list_league_matches(league_id)
    return {"matches": [_match_dict(m, user) for m in matches]}


@app.post("/leagues/{league_id}/matches")
def report_league_match(
    league_id: str, req: ReportMatchRequest, user: User = Depends(_current_user)
) -> dict[str, Any]:
    store = get_store()
    with domain_errors():
        league = LeagueService(store).get_league(league_id)
        sets = _sets_from(req.sets, req.set_fields, league.sets_per_match)
        match = MatchService(store).report_league_match(user, league_id, req.player_a_id, req.player_b_id, sets)
    return _match_dict(match, user)


@app.post("/matches/{match_id}/confirm")
def confirm_league_match(match_id: str, user: User = Depends(_current_user)) -> dict[str, Any]:
    with domain_errors():
        match = MatchService(get_store()).confirm_league_match(user, match_id)
    return _match_dict(match, user)


@app.post("/matches/{match_id}/reject")
def reject_league_match(match_id: str, user: User = Depends(_current_user)) -> dict[str, Any]:
    with domain_errors():
        match = MatchService(get_store()).reject_league_match(user, match_id)
    return _match_dict(match, user)


# ---------- Friendly matches ----------


@app.get("/friendlies")
def list_friendlies(
    period: str = Period.MONTH.value,
    month: int = 0,
    year: int = 0,
    opponent_id: str = "",
    user: User = Depends(_current_user),
) -> dict[str, Any]:
    """Friendly matches in a period, optionally against one opponent, with a head-to-head summary."""
    store = get_store()
    now = utc_now()
    matches = store.list_friendly_matches()
    filtered = filter_friendly_matches(matches, period or Period.MONTH.value, month, year, opponent_id.strip(), now)
    out: dict[str, Any] = {
        "period": period or Period.MONTH.value,
        "year_options": year_options(matches, now.year),
        "matches": [_match_dict(m, user) for m in filtered],
        "summary": None,
    }
    if opponent_id:
        opponent = store.get_user(opponent_id.strip())
        if opponent is not None:
            out["summary"] = build_friendly_summary(user.id, opponent.full_name, filtered).to_dict()
    return out


@app.post("/friendlies")
def report_friendly(req: ReportFriendlyRequest, user: User = Depends(_current_user)) -> dict[str, Any]:
    sets = _sets_from(req.sets, req.set_fields, clamp_sets_count(req.sets_count))
    with domain_errors():
        match = MatchService(get_store()).report_friendly_match(user, req.opponent_id, sets, req.played_at)
    return _match_dict(match, user)


@app.post("/friendlies/{match_id}/confirm")
def confirm_friendly(match_id: str, user: User = Depends(_current_user)) -> dict[str, Any]:
    with domain_errors():
        match = MatchService(get_store()).confirm_friendly_match(user, match_id)
    return _match_dict(match, user)


@app.post("/friendlies/{match_id}/reject")
def reject_friendly(match_id: str, user: User = Depends(_current_user)) -> dict[str, Any]:
    with domain_errors():
        match = MatchService(get_store()).reject_friendly_match(user, match_id)
    return _match_dict(match, user)


# ---------- Reports ----------


@app.post("/reports")
def create_report(req: CreateReportRequest, user: User = Depends(_current_user)) -> dict[str, Any]:
    with domain_errors():
        report = ReportService(get_store()).submit(user, req.type, req.title, req.description)
    return report.to_dict()


@app.get("/reports")
def list_reports(user: User = Depends(_current_user)) -> dict[str, Any]:
    with domain_errors():
        reports = ReportService(get_store()).list_reports(user)
    return {"reports": [r.to_dict() for r in reports]}

# ---------- Run with: uvicorn squashleague.api:app --reload ----------
