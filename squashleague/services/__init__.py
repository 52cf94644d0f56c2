"""
Service layer: match lifecycle, standings, league membership, dashboard.
Services raise squashleague.errors exceptions; persistence goes through a Store.
"""
from .dashboard import ActivityItem, DashboardService, JoinRequestItem
from .league_service import LeagueService, league_status_for_dates
from .match_service import MatchService, clamp_sets_per_match, parse_sets
from .report_service import ReportService
from .standings import StandingEntry, build_standings
from .user_service import UserService

__all__ = [
    "DashboardService",
    "ActivityItem",
    "JoinRequestItem",
    "LeagueService",
    "MatchService",
    "ReportService",
    "UserService",
    "StandingEntry",
    "build_standings",
    "league_status_for_dates",
    "clamp_sets_per_match",
    "parse_sets",
]
