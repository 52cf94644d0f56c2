"""
Deterministic demo data for a fresh store.
Same rng seed -> same users, leagues and matches (ids included), relative to `now`.
Writes only through the Store contract, so any backend can be seeded.
"""
from __future__ import annotations

import logging
import random
import uuid
from datetime import datetime, timedelta, timezone

from squashleague.auth import hash_password
from squashleague.models import (
    FriendlyMatch,
    League,
    LeagueAdminRole,
    Match,
    MatchStatus,
    SetScore,
    SkillLevel,
    User,
    UserRole,
    utc_now,
)
from squashleague.persistence.store import Store
from squashleague.services.league_service import league_status_for_dates

logger = logging.getLogger(__name__)

SEED = 42
DEFAULT_PASSWORD = "Password123"
SUPER_ADMIN_EMAIL = "admin@example.com"
# Second account of the super admin; kept out of generated activity
QUIET_EMAIL = "admin+quiet@example.com"

_USERS = [
    ("Krystian", "Lewandowski", SUPER_ADMIN_EMAIL, SkillLevel.INTERMEDIATE, 12),
    ("Lewy", "Nowy", QUIET_EMAIL, SkillLevel.BEGINNER, 61),
    ("Paweł", "Góra", "pawel.gora@example.com", SkillLevel.BEGINNER, 32),
    ("Jacek", "Nowak", "jacek.nowak@example.com", SkillLevel.BEGINNER, 33),
    ("Tomek", "Zieliński", "tomek.zielinski@example.com", SkillLevel.BEGINNER, 34),
    ("Władek", "Kowal", "wladek.kowal@example.com", SkillLevel.BEGINNER, 35),
    ("Damian", "Lis", "damian.lis@example.com", SkillLevel.BEGINNER, 36),
    ("Aneta", "Zalewska", "aneta.zalewska@example.com", SkillLevel.INTERMEDIATE, 47),
    ("Marek", "Król", "marek.krol@example.com", SkillLevel.INTERMEDIATE, 48),
    ("Kasia", "Wrona", "kasia.wrona@example.com", SkillLevel.BEGINNER, 49),
    ("Ola", "Chmiel", "ola.chmiel@example.com", SkillLevel.PRO, 50),
    ("Piotr", "Maj", "piotr.maj@example.com", SkillLevel.INTERMEDIATE, 51),
    ("Lena", "Jankowska", "lena.jankowska@example.com", SkillLevel.BEGINNER, 52),
    ("Bartek", "Nowicki", "bartek.nowicki@example.com", SkillLevel.BEGINNER, 53),
    ("Rafał", "Olszewski", "rafal.olszewski@example.com", SkillLevel.INTERMEDIATE, 54),
    ("Ewa", "Kania", "ewa.kania@example.com", SkillLevel.INTERMEDIATE, 55),
    ("Krzysztof", "Małek", "krzysztof.malek@example.com", SkillLevel.BEGINNER, 56),
    ("Monika", "Woźniak", "monika.wozniak@example.com", SkillLevel.BEGINNER, 57),
    ("Tomasz", "Jura", "tomasz.jura@example.com", SkillLevel.INTERMEDIATE, 58),
    ("Natalia", "Kruk", "natalia.kruk@example.com", SkillLevel.PRO, 59),
]

_LEAGUES = [
    ("Liga Warszawska", "Liga miejska dla graczy z całej Warszawy.", "Warsaw Squash Center", 5),
    ("Liga Klubowa", "Rozgrywki klubowe dla stałych bywalców.", "Squash Arena", 5),
    ("Liga Weekendowa", "Spotkania weekendowe dla znajomych.", "City Squash Hub", 3),
    ("Liga Pro", "Mecze dla zaawansowanych zawodników.", "ProSquash Hall", 5),
]


def _uuid(rng: random.Random) -> str:
    return str(uuid.UUID(int=rng.getrandbits(128), version=4))


def random_sets(rng: random.Random, max_sets: int) -> list[SetScore]:
    """3..max_sets sets, each side 11-16 points, never level."""
    max_sets = max(max_sets, 3)
    total = 3 + rng.randrange(max_sets - 2)
    sets = []
    for _ in range(total):
        a = 11 + rng.randrange(6)
        b = 11 + rng.randrange(6)
        if a == b:
            b += 2
        sets.append(SetScore(a, b))
    return sets


def _time_in_month(rng: random.Random, year: int, month: int) -> datetime:
    return datetime(
        year, month, 1 + rng.randrange(27), rng.randrange(22), rng.randrange(60), tzinfo=timezone.utc
    )


def _pick_two(ids: list[str], rng: random.Random) -> tuple[str, str]:
    a = rng.choice(ids)
    b = rng.choice(ids)
    while b == a:
        b = rng.choice(ids)
    return a, b


def seed_data(
    store: Store,
    *,
    seed: int = SEED,
    now: datetime | None = None,
    matches_per_year: int = 200,
) -> dict[str, int]:
    """
    Populate store with demo users, leagues, league matches and friendlies.
    Returns counts of what was created.
    """
    rng = random.Random(seed)
    now = now or utc_now()
    password_hash = hash_password(DEFAULT_PASSWORD)

    users: list[User] = []
    for first, last, email, skill, img in _USERS:
        role = UserRole.SUPER_ADMIN if email == SUPER_ADMIN_EMAIL else UserRole.USER
        users.append(store.create_user(User(
            id=_uuid(rng),
            first_name=first,
            last_name=last,
            email=email,
            password_hash=password_hash,
            role=role.value,
            skill=skill.value,
            avatar_url=f"https://i.pravatar.cc/100?img={img}",
        )))
    active = [u for u in users if u.email != QUIET_EMAIL]
    active_ids = [u.id for u in active]
    super_admin = next(u for u in users if u.email == SUPER_ADMIN_EMAIL)

    leagues: list[League] = []
    for i, (name, description, location, sets) in enumerate(_LEAGUES):
        owner = active[i % len(active)]
        player_ids = rng.sample(active_ids, min(10 + rng.randrange(6), len(active_ids)))
        start = now + timedelta(days=-30 + rng.randrange(90))
        end = start + timedelta(days=30 + rng.randrange(120)) if rng.randrange(4) == 0 else None
        for uid in (owner.id, super_admin.id):
            if uid not in player_ids:
                player_ids.append(uid)
        leagues.append(store.create_league(League(
            id=_uuid(rng),
            name=name,
            description=description,
            location=location,
            owner_id=owner.id,
            admin_roles={owner.id: LeagueAdminRole.ADMIN_PLAYER.value},
            player_ids=player_ids,
            sets_per_match=sets,
            start_date=start,
            end_date=end,
            status=league_status_for_dates(start, end, now).value,
            created_at=now - timedelta(days=rng.randrange(120)),
        )))

    match_count = 0
    # A mix of states for the super admin, so every screen has something to show
    statuses = [MatchStatus.CONFIRMED, MatchStatus.PENDING, MatchStatus.REJECTED]
    for league in leagues:
        opponents = [pid for pid in league.player_ids if pid != super_admin.id]
        for _ in range(3 + rng.randrange(4)):
            opponent = rng.choice(opponents)
            status = rng.choice(statuses)
            store.create_match(Match(
                id=_uuid(rng),
                league_id=league.id,
                player_a_id=super_admin.id,
                player_b_id=opponent,
                sets=random_sets(rng, league.sets_per_match),
                status=status.value,
                reported_by=super_admin.id,
                confirmed_by=opponent if status == MatchStatus.CONFIRMED else "",
                created_at=now - timedelta(days=rng.randrange(60)),
            ))
            match_count += 1

    friendly_count = 0
    for year in (now.year, now.year - 1):
        for i in range(matches_per_year):
            league = rng.choice(leagues)
            a, b = _pick_two(league.player_ids, rng)
            store.create_match(Match(
                id=_uuid(rng),
                league_id=league.id,
                player_a_id=a,
                player_b_id=b,
                sets=random_sets(rng, league.sets_per_match),
                status=MatchStatus.CONFIRMED.value,
                reported_by=a,
                confirmed_by=b,
                created_at=_time_in_month(rng, year, i % 12 + 1),
            ))
            match_count += 1
        for i in range(matches_per_year):
            a, b = _pick_two(active_ids, rng)
            played_at = _time_in_month(rng, year, i % 12 + 1)
            store.create_friendly_match(FriendlyMatch(
                id=_uuid(rng),
                player_a_id=a,
                player_b_id=b,
                sets=random_sets(rng, 5),
                status=MatchStatus.CONFIRMED.value,
                reported_by=a,
                confirmed_by=b,
                played_at=played_at,
                created_at=played_at,
            ))
            friendly_count += 1

    counts = {
        "users": len(users),
        "leagues": len(leagues),
        "matches": match_count,
        "friendly_matches": friendly_count,
    }
    logger.info("Seeded store: %s", counts)
    return counts
