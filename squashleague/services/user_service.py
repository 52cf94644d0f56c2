"""
Registration and login. Passwords are hashed with squashleague.auth and
never stored plain.
"""
from __future__ import annotations

import logging
from urllib.parse import quote_plus

from squashleague.auth import hash_password, password_matches, validate_password
from squashleague.errors import ValidationError
from squashleague.models import SkillLevel, User, UserRole
from squashleague.persistence.store import Store

logger = logging.getLogger(__name__)


def default_avatar_url(email: str) -> str:
    return f"https://i.pravatar.cc/100?u={quote_plus(email)}"


class UserService:
    def __init__(self, store: Store) -> None:
        self._store = store

    def register(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        phone: str = "",
        skill: str = SkillLevel.BEGINNER.value,
        password_confirm: str | None = None,
    ) -> User:
        """
        Create a user. Names and email are required, the password must pass
        validate_password. Duplicate email (any case) -> DuplicateEmailError.
        """
        email = email.strip()
        first_name = first_name.strip()
        last_name = last_name.strip()
        if not (email and first_name and last_name):
            raise ValidationError("first name, last name and email are required")
        validate_password(password, password_confirm)
        try:
            skill = SkillLevel(skill).value
        except ValueError:
            raise ValidationError(f"invalid skill level: {skill!r}") from None
        user = self._store.create_user(User(
            first_name=first_name,
            last_name=last_name,
            email=email,
            phone=phone.strip(),
            password_hash=hash_password(password),
            role=UserRole.USER.value,
            skill=skill,
            avatar_url=default_avatar_url(email),
        ))
        logger.info("Registered user %s", user.id)
        return user

    def authenticate(self, email: str, password: str) -> User | None:
        user = self._store.get_user_by_email(email)
        if user is None or not password_matches(user, password):
            return None
        return user

    def get_user(self, user_id: str) -> User | None:
        return self._store.get_user(user_id)

    def list_users(self) -> list[User]:
        return self._store.list_users()
