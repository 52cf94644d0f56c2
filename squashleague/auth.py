"""
Account credentials: the registration password policy, password hashes and
the bearer tokens handed out at signup and login.

Tokens carry the user id and role. The API resolves the id against the store
on every request and takes rights from the stored user, so a demoted admin
loses access before their token expires.
"""
from __future__ import annotations

import os
from datetime import datetime, timedelta

from jose import JWTError, jwt
from passlib.context import CryptContext

from squashleague.errors import ValidationError
from squashleague.models import User, utc_now

PASSWORD_MIN_LENGTH = 8

TOKEN_SECRET = os.environ.get("JWT_SECRET_KEY", "squashleague-dev-secret-change-in-production")
TOKEN_ALGORITHM = "HS256"
TOKEN_ISSUER = "squashleague"
TOKEN_LIFETIME = timedelta(days=7)

# pbkdf2_sha256 needs no native backend and has no 72-byte password limit
_hasher = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


# ---------- Passwords ----------


def validate_password(password: str, confirm: str | None = None) -> None:
    """
    Registration rules: at least 8 characters with one ASCII uppercase letter.
    When confirm is given it must repeat the password.
    """
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationError(f"password must be at least {PASSWORD_MIN_LENGTH} characters")
    if not any("A" <= c <= "Z" for c in password):
        raise ValidationError("password must contain an uppercase letter")
    if confirm is not None and confirm != password:
        raise ValidationError("passwords do not match")


def hash_password(password: str) -> str:
    return _hasher.hash(password)


def password_matches(user: User, password: str) -> bool:
    # seeded or imported accounts may have no hash at all
    if not user.password_hash:
        return False
    return _hasher.verify(password, user.password_hash)


# ---------- Tokens ----------


def issue_token(user: User, now: datetime | None = None) -> str:
    issued = now or utc_now()
    claims = {
        "sub": user.id,
        "role": user.role,
        "iss": TOKEN_ISSUER,
        "iat": issued,
        "exp": issued + TOKEN_LIFETIME,
    }
    return jwt.encode(claims, TOKEN_SECRET, algorithm=TOKEN_ALGORITHM)


def token_user_id(token: str) -> str | None:
    """User id carried by a valid token; None when expired, forged or foreign."""
    try:
        claims = jwt.decode(token, TOKEN_SECRET, algorithms=[TOKEN_ALGORITHM], issuer=TOKEN_ISSUER)
    except JWTError:
        return None
    subject = claims.get("sub")
    return subject if isinstance(subject, str) and subject else None
