"""
League service: creation, membership, admin roles, join requests, ending.
Manager-only operations raise ForbiddenError for anyone else.
Persistence is delegated to the Store.
"""
from __future__ import annotations

import logging
from datetime import datetime

from squashleague.errors import ForbiddenError, NotFoundError, ValidationError
from squashleague.models import (
    JoinRequestStatus,
    League,
    LeagueAdminRole,
    LeagueJoinRequest,
    LeagueStatus,
    User,
    utc_now,
)
from squashleague.persistence.store import Store
from squashleague.services.match_service import clamp_sets_per_match
from squashleague.services.permissions import can_manage_league, is_league_admin, is_league_player
from squashleague.services.standings import StandingEntry, build_standings

logger = logging.getLogger(__name__)


def league_status_for_dates(start: datetime | None, end: datetime | None, now: datetime) -> LeagueStatus:
    if end is not None and end < now:
        return LeagueStatus.FINISHED
    if start is not None and start > now:
        return LeagueStatus.UPCOMING
    return LeagueStatus.ACTIVE


def parse_admin_role(role) -> LeagueAdminRole:
    try:
        return LeagueAdminRole(str(getattr(role, "value", role)).strip())
    except ValueError:
        raise ValidationError(f"invalid admin role: {role!r}") from None


class LeagueService:
    """Membership and join-request workflow for leagues."""

    def __init__(self, store: Store) -> None:
        self._store = store

    # ---------- Lookups ----------

    def get_league(self, league_id: str) -> League:
        league = self._store.get_league(league_id)
        if league is None:
            raise NotFoundError("league not found")
        return league

    def _managed_league(self, actor: User, league_id: str) -> League:
        league = self.get_league(league_id)
        if not can_manage_league(league, actor):
            raise ForbiddenError("only league managers can do this")
        return league

    def league_players(self, league: League) -> list[User]:
        """Member users in player_ids order; ids with no user are skipped."""
        players = []
        for uid in league.player_ids:
            user = self._store.get_user(uid)
            if user is not None:
                players.append(user)
        return players

    def search_leagues(self, query: str = "") -> list[League]:
        """Substring match on name, description or location, case-insensitive."""
        leagues = self._store.list_leagues()
        needle = query.strip().lower()
        if not needle:
            return leagues
        return [
            l for l in leagues
            if needle in l.name.lower() or needle in l.description.lower() or needle in l.location.lower()
        ]

    def leagues_for_user(self, user_id: str) -> list[League]:
        if not user_id:
            return []
        return [
            l for l in self._store.list_leagues()
            if is_league_player(l, user_id) or is_league_admin(l, user_id)
        ]

    def standings(self, league_id: str) -> list[StandingEntry]:
        league = self.get_league(league_id)
        return build_standings(self.league_players(league), self._store.list_matches(league.id))

    # ---------- Create / end ----------

    def create_league(
        self,
        actor: User,
        name: str,
        start_date: datetime,
        end_date: datetime | None = None,
        description: str = "",
        location: str = "",
        sets_per_match=None,
        now: datetime | None = None,
    ) -> League:
        """Actor becomes owner, admin-player and first member."""
        name = name.strip()
        if not name:
            raise ValidationError("name is required")
        if start_date is None:
            raise ValidationError("start date is required")
        if end_date is not None and end_date < start_date:
            raise ValidationError("end date must not be before start date")
        now = now or utc_now()
        league = self._store.create_league(League(
            name=name,
            description=description.strip(),
            location=location.strip(),
            owner_id=actor.id,
            admin_roles={actor.id: LeagueAdminRole.ADMIN_PLAYER.value},
            player_ids=[actor.id],
            sets_per_match=clamp_sets_per_match(sets_per_match),
            start_date=start_date,
            end_date=end_date,
            status=league_status_for_dates(start_date, end_date, now).value,
            created_at=now,
        ))
        logger.info("League %s created by %s", league.id, actor.id)
        return league

    def end_league(self, actor: User, league_id: str, now: datetime | None = None) -> League:
        """Force status finished and stamp end_date. Already finished -> unchanged."""
        league = self._managed_league(actor, league_id)
        if league.status == LeagueStatus.FINISHED.value:
            return league
        league.status = LeagueStatus.FINISHED.value
        league.end_date = now or utc_now()
        self._store.update_league(league)
        logger.info("League %s ended by %s", league.id, actor.id)
        return league

    # ---------- Members / admins ----------

    def add_player(self, actor: User, league_id: str, user_id: str) -> League:
        league = self._managed_league(actor, league_id)
        if not user_id:
            raise ValidationError("no player selected")
        if self._store.get_user(user_id) is None:
            raise NotFoundError("user not found")
        self._store.add_player_to_league(league.id, user_id)
        logger.info("User %s added to league %s by %s", user_id, league.id, actor.id)
        return self.get_league(league.id)

    def grant_admin(self, actor: User, league_id: str, user_id: str, role) -> League:
        league = self._managed_league(actor, league_id)
        if not user_id:
            raise ValidationError("no player selected")
        role = parse_admin_role(role)
        if user_id == league.owner_id:
            raise ValidationError("cannot change the owner's role")
        if self._store.get_user(user_id) is None:
            raise NotFoundError("user not found")
        self._store.add_admin_to_league(league.id, user_id, role.value)
        logger.info("User %s granted %s in league %s", user_id, role.value, league.id)
        return self.get_league(league.id)

    def change_admin_role(self, actor: User, league_id: str, user_id: str, role) -> League:
        league = self._managed_league(actor, league_id)
        if user_id == league.owner_id:
            raise ValidationError("cannot change the owner's role")
        role = parse_admin_role(role)
        self._store.update_admin_role(league.id, user_id, role.value)
        logger.info("Admin %s now %s in league %s", user_id, role.value, league.id)
        return self.get_league(league.id)

    def revoke_admin(self, actor: User, league_id: str, user_id: str) -> League:
        """Drops the admin entry only; membership stays."""
        league = self._managed_league(actor, league_id)
        if user_id == league.owner_id:
            raise ValidationError("cannot remove the owner")
        self._store.remove_admin_from_league(league.id, user_id)
        logger.info("Admin %s removed from league %s", user_id, league.id)
        return self.get_league(league.id)

    # ---------- Join requests ----------

    def request_to_join(self, actor: User, league_id: str) -> LeagueJoinRequest | None:
        """
        Members and managers get None. A second request while one is pending
        returns the pending one instead of creating another.
        """
        league = self.get_league(league_id)
        if is_league_player(league, actor.id) or is_league_admin(league, actor.id):
            return None
        if self._store.has_pending_join_request(league.id, actor.id):
            logger.debug("Duplicate join request from %s for league %s ignored", actor.id, league.id)
            for r in self._store.list_join_requests(league.id):
                if r.user_id == actor.id and r.status == JoinRequestStatus.PENDING.value:
                    return r
        request = self._store.create_join_request(LeagueJoinRequest(
            league_id=league.id,
            user_id=actor.id,
            status=JoinRequestStatus.PENDING.value,
        ))
        logger.info("Join request %s from %s for league %s", request.id, actor.id, league.id)
        return request

    def list_join_requests(self, actor: User, league_id: str) -> list[LeagueJoinRequest]:
        league = self._managed_league(actor, league_id)
        return self._store.list_join_requests(league.id)

    def _pending_request(self, league: League, request_id: str) -> LeagueJoinRequest:
        request = self._store.get_join_request(request_id)
        if request is None or request.league_id != league.id:
            raise NotFoundError("join request not found")
        if request.status != JoinRequestStatus.PENDING.value:
            raise ValidationError("join request already decided")
        return request

    def approve_join_request(
        self, actor: User, league_id: str, request_id: str, now: datetime | None = None
    ) -> LeagueJoinRequest:
        league = self._managed_league(actor, league_id)
        request = self._pending_request(league, request_id)
        if not is_league_player(league, request.user_id) and not is_league_admin(league, request.user_id):
            self._store.add_player_to_league(league.id, request.user_id)
        request.status = JoinRequestStatus.APPROVED.value
        request.decided_by = actor.id
        request.decided_at = now or utc_now()
        self._store.update_join_request(request)
        logger.info("Join request %s approved by %s", request.id, actor.id)
        return request

    def reject_join_request(
        self, actor: User, league_id: str, request_id: str, now: datetime | None = None
    ) -> LeagueJoinRequest:
        league = self._managed_league(actor, league_id)
        request = self._pending_request(league, request_id)
        request.status = JoinRequestStatus.REJECTED.value
        request.decided_by = actor.id
        request.decided_at = now or utc_now()
        self._store.update_join_request(request)
        logger.info("Join request %s rejected by %s", request.id, actor.id)
        return request
