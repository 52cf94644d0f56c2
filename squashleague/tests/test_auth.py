"""
Password policy, password hashes and bearer tokens.
"""
from __future__ import annotations

from datetime import timedelta

import pytest
from jose import jwt

from squashleague import auth
from squashleague.errors import ValidationError
from squashleague.models import User, UserRole, utc_now


def _user(**kw) -> User:
    return User(id="u-1", email="alice@example.com", role=UserRole.ADMIN.value, **kw)


# ---------- Password policy ----------


@pytest.mark.parametrize("password,confirm", [
    ("Secret1", None),  # too short
    ("secret123", None),  # no uppercase
    ("sécretÉÉÉ", None),  # uppercase outside A-Z does not count
    ("Secret123", "Secret124"),
])
def test_validate_password_rejects(password, confirm):
    with pytest.raises(ValidationError):
        auth.validate_password(password, confirm)


def test_validate_password_accepts():
    auth.validate_password("Secret123")
    auth.validate_password("Secret123", "Secret123")


def test_hash_is_salted_and_checked():
    first = auth.hash_password("Secret123")
    assert first != auth.hash_password("Secret123")
    assert "Secret123" not in first
    user = _user(password_hash=first)
    assert auth.password_matches(user, "Secret123")
    assert not auth.password_matches(user, "secret123")


def test_account_without_hash_never_matches():
    assert not auth.password_matches(_user(), "")


# ---------- Tokens ----------


def test_token_carries_user_id_and_role():
    token = auth.issue_token(_user())
    assert auth.token_user_id(token) == "u-1"
    claims = jwt.get_unverified_claims(token)
    assert claims["role"] == "admin"
    assert claims["iss"] == auth.TOKEN_ISSUER


def test_expired_token_is_rejected():
    issued = utc_now() - auth.TOKEN_LIFETIME - timedelta(minutes=1)
    assert auth.token_user_id(auth.issue_token(_user(), now=issued)) is None


def test_token_from_another_issuer_is_rejected():
    now = utc_now()
    token = jwt.encode(
        {"sub": "u-1", "iss": "someone-else", "iat": now, "exp": now + timedelta(hours=1)},
        auth.TOKEN_SECRET,
        algorithm=auth.TOKEN_ALGORITHM,
    )
    assert auth.token_user_id(token) is None


def test_token_signed_with_other_secret_is_rejected():
    now = utc_now()
    token = jwt.encode(
        {"sub": "u-1", "iss": auth.TOKEN_ISSUER, "iat": now, "exp": now + timedelta(hours=1)},
        "not-the-secret",
        algorithm=auth.TOKEN_ALGORITHM,
    )
    assert auth.token_user_id(token) is None


def test_garbage_token_is_rejected():
    assert auth.token_user_id("garbage") is None
