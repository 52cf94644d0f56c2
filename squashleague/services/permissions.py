"""
League permission checks. Pure functions over a League snapshot.
"""
from __future__ import annotations

from squashleague.models import League, User


def is_league_admin(league: League, user_id: str) -> bool:
    """Owner or any admin-role holder. Super admins are not included here."""
    if not user_id:
        return False
    return league.owner_id == user_id or user_id in league.admin_roles


def is_league_player(league: League, user_id: str) -> bool:
    if not user_id:
        return False
    return user_id in league.player_ids


def can_manage_league(league: League, user: User | None) -> bool:
    if user is None or not user.id:
        return False
    return user.is_super_admin or is_league_admin(league, user.id)
