"""
Column codec shared by the SQL backends.
Composite fields live in TEXT columns as JSON; timestamps as ISO-8601 text.
Both SQLite and PostgreSQL go through these functions only.
"""
from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from squashleague.models import SetScore, as_utc, enum_value


# ---------- Timestamps ----------


def encode_datetime(value: datetime | None) -> str | None:
    if value is None:
        return None
    return as_utc(value).isoformat()


def decode_datetime(value: str | None) -> datetime | None:
    if value is None or not str(value).strip():
        return None
    return as_utc(datetime.fromisoformat(str(value).replace("Z", "+00:00")))


# ---------- League composites ----------


def encode_admin_roles(roles: dict[str, str] | None) -> str:
    return json.dumps({uid: enum_value(role) for uid, role in (roles or {}).items()}, sort_keys=True)


def decode_admin_roles(raw: str | None) -> dict[str, str]:
    if raw is None or not raw.strip():
        return {}
    data = json.loads(raw)
    if not isinstance(data, dict):
        return {}
    return {str(k): str(v) for k, v in data.items()}


def encode_player_ids(player_ids: list[str] | None) -> str:
    return json.dumps(list(player_ids or []))


def decode_player_ids(raw: str | None) -> list[str]:
    if raw is None or not raw.strip():
        return []
    data = json.loads(raw)
    if not isinstance(data, list):
        return []
    return [str(x) for x in data]


# ---------- Set scores ----------
# Stored as [{"A": 11, "B": 5}, ...]; lower-case keys are accepted on read.


def encode_sets(sets: list[SetScore] | None) -> str:
    return json.dumps([{"A": s.a, "B": s.b} for s in (sets or [])])


def decode_sets(raw: str | None) -> list[SetScore]:
    if raw is None or not raw.strip():
        return []
    data: Any = json.loads(raw)
    if not isinstance(data, list):
        return []
    result: list[SetScore] = []
    for item in data:
        a = item.get("A", item.get("a", 0))
        b = item.get("B", item.get("b", 0))
        result.append(SetScore(a=int(a), b=int(b)))
    return result
