"""
Error taxonomy shared by stores and services.
The API layer maps each family to an HTTP status.
"""
from __future__ import annotations


class SquashLeagueError(Exception):
    """Base for all domain and storage errors."""


class NotFoundError(SquashLeagueError):
    """Unknown id (league, match, join request) or unmanaged admin."""


class ValidationError(SquashLeagueError, ValueError):
    """Malformed or missing input."""


class DuplicateEmailError(ValidationError):
    """Another user already registered this email (case-insensitive)."""


class ForbiddenError(SquashLeagueError):
    """Actor lacks the required relationship to the entity."""


class ConflictError(SquashLeagueError):
    """Operation conflicts with current state or backend condition."""


class InvalidTransitionError(ConflictError):
    """Match already left pending (confirmed/rejected are terminal)."""


class MigrationError(ConflictError):
    """A migration script failed; its transaction was rolled back."""


class BackendUnavailableError(ConflictError):
    """Database could not be opened or reached."""
