"""
Match lifecycle: report, confirm, reject for league and friendly matches.

A match is created pending by its reporter. Only the other player may move
it, once, to confirmed or rejected:

    pending -> confirmed   (confirmed_by = actor)
    pending -> rejected

Scheduled is reserved and never produced here.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Mapping, TypeVar

from squashleague.errors import (
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from squashleague.models import FriendlyMatch, League, Match, MatchStatus, SetScore, User, as_utc
from squashleague.persistence.store import Store
from squashleague.services.permissions import can_manage_league, is_league_player

logger = logging.getLogger(__name__)

DEFAULT_SETS_PER_MATCH = 5
MAX_SETS_PER_MATCH = 9
MAX_FRIENDLY_SETS = 20

_M = TypeVar("_M", Match, FriendlyMatch)


# ---------- Form helpers ----------


def _to_int(value) -> int | None:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        return None


def clamp_sets_per_match(value) -> int:
    """Blank or invalid -> 5; otherwise clamped to 1..9."""
    parsed = _to_int(value)
    if parsed is None or parsed < 1:
        return DEFAULT_SETS_PER_MATCH
    return min(parsed, MAX_SETS_PER_MATCH)


def clamp_sets_count(value, maximum: int = MAX_FRIENDLY_SETS) -> int:
    """Number of set rows on the friendly form. Blank or invalid -> 5."""
    parsed = _to_int(value)
    if parsed is None or parsed < 1:
        return DEFAULT_SETS_PER_MATCH
    if maximum > 0 and parsed > maximum:
        return maximum
    return parsed


def parse_sets(form: Mapping[str, object], max_sets: int) -> list[SetScore]:
    """
    Read set_{i}_a / set_{i}_b for i in 1..max_sets.
    Pairs with a blank or non-integer side are skipped, not rejected.
    """
    if max_sets < 1:
        max_sets = DEFAULT_SETS_PER_MATCH
    sets: list[SetScore] = []
    for i in range(1, max_sets + 1):
        a = _to_int(form.get(f"set_{i}_a"))
        b = _to_int(form.get(f"set_{i}_b"))
        if a is None or b is None:
            continue
        sets.append(SetScore(a, b))
    return sets


# ---------- Transitions ----------


def can_decide(match: Match | FriendlyMatch, actor_id: str) -> bool:
    """True if actor may confirm or reject: a player, and not the reporter."""
    if not actor_id or actor_id == match.reported_by:
        return False
    return actor_id in (match.player_a_id, match.player_b_id)


def decide(match: _M, actor_id: str, decision: MatchStatus) -> _M:
    """
    Apply confirm/reject to match in place and return it.
    Permission is checked before state so outsiders learn nothing about it.
    """
    if decision not in (MatchStatus.CONFIRMED, MatchStatus.REJECTED):
        raise ValueError(f"not a decision: {decision}")
    if actor_id == match.reported_by:
        raise ForbiddenError("cannot decide your own result")
    if actor_id not in (match.player_a_id, match.player_b_id):
        raise ForbiddenError("only the players of a match can decide it")
    if match.status != MatchStatus.PENDING.value:
        raise InvalidTransitionError(f"match already {match.status}")
    match.status = decision.value
    if decision == MatchStatus.CONFIRMED:
        match.confirmed_by = actor_id
    return match


def _require_sets(sets: Iterable[SetScore]) -> list[SetScore]:
    sets = list(sets)
    if not sets:
        raise ValidationError("enter at least one set")
    return sets


# ---------- MatchService ----------


class MatchService:
    """Reporting and deciding matches against a Store."""

    def __init__(self, store: Store) -> None:
        self._store = store

    # League matches

    def _require_league(self, league_id: str) -> League:
        league = self._store.get_league(league_id)
        if league is None:
            raise NotFoundError("league not found")
        return league

    def report_league_match(
        self,
        actor: User,
        league_id: str,
        player_a_id: str,
        player_b_id: str,
        sets: Iterable[SetScore],
    ) -> Match:
        league = self._require_league(league_id)
        manager = can_manage_league(league, actor)
        if not manager and not is_league_player(league, actor.id):
            raise ForbiddenError("only league members can report matches")
        if not player_a_id or not player_b_id or player_a_id == player_b_id:
            raise ValidationError("choose two different players")
        if not manager:
            if player_a_id != actor.id:
                raise ValidationError("player A must be you")
            if player_b_id == actor.id:
                raise ValidationError("choose another player as opponent")
        match = self._store.create_match(Match(
            league_id=league.id,
            player_a_id=player_a_id,
            player_b_id=player_b_id,
            sets=_require_sets(sets),
            status=MatchStatus.PENDING.value,
            reported_by=actor.id,
        ))
        logger.info("Match %s reported in league %s by %s", match.id, league.id, actor.id)
        return match

    def _decide_league_match(self, actor: User, match_id: str, decision: MatchStatus) -> Match:
        match = self._store.get_match(match_id)
        if match is None:
            raise NotFoundError("match not found")
        decide(match, actor.id, decision)
        self._store.update_match(match)
        logger.info("Match %s %s by %s", match.id, match.status, actor.id)
        return match

    def confirm_league_match(self, actor: User, match_id: str) -> Match:
        return self._decide_league_match(actor, match_id, MatchStatus.CONFIRMED)

    def reject_league_match(self, actor: User, match_id: str) -> Match:
        return self._decide_league_match(actor, match_id, MatchStatus.REJECTED)

    def list_league_matches(self, league_id: str) -> list[Match]:
        self._require_league(league_id)
        return self._store.list_matches(league_id)

    # Friendly matches

    def report_friendly_match(
        self,
        actor: User,
        opponent_id: str,
        sets: Iterable[SetScore],
        played_at: datetime | None = None,
    ) -> FriendlyMatch:
        """Actor is always player A. A naive played_at is read as UTC."""
        if not opponent_id:
            raise ValidationError("no opponent selected")
        opponent = self._store.get_user(opponent_id)
        if opponent is None:
            raise NotFoundError("opponent not found")
        if opponent.id == actor.id:
            raise ValidationError("cannot play against yourself")
        match = self._store.create_friendly_match(FriendlyMatch(
            player_a_id=actor.id,
            player_b_id=opponent.id,
            sets=_require_sets(sets),
            status=MatchStatus.PENDING.value,
            reported_by=actor.id,
            played_at=as_utc(played_at),
        ))
        logger.info("Friendly match %s reported by %s against %s", match.id, actor.id, opponent.id)
        return match

    def _decide_friendly_match(self, actor: User, match_id: str, decision: MatchStatus) -> FriendlyMatch:
        match = self._store.get_friendly_match(match_id)
        if match is None:
            raise NotFoundError("friendly match not found")
        decide(match, actor.id, decision)
        self._store.update_friendly_match(match)
        logger.info("Friendly match %s %s by %s", match.id, match.status, actor.id)
        return match

    def confirm_friendly_match(self, actor: User, match_id: str) -> FriendlyMatch:
        return self._decide_friendly_match(actor, match_id, MatchStatus.CONFIRMED)

    def reject_friendly_match(self, actor: User, match_id: str) -> FriendlyMatch:
        return self._decide_friendly_match(actor, match_id, MatchStatus.REJECTED)
