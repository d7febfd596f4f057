"""
Custom exception hierarchy for SelfPatch.

All exceptions inherit from SelfPatchException, enabling a catch-all for
engine errors while keeping the ability to catch specific error types.

Absence (an unknown bug, pattern or user id) is never signalled with an
exception; lifecycle and pattern operations treat it as a no-op.
"""

from __future__ import annotations


class SelfPatchException(Exception):
    """Base exception for all SelfPatch errors."""


class ConfigurationError(SelfPatchException):
    """Invalid settings values or an incomplete static lookup table."""


class ValidationError(SelfPatchException):
    """Input validation failures (duplicate responses, malformed values)."""


class StateError(SelfPatchException):
    """Operation rejected because of the current persisted state."""


class DiagnosticAlreadySubmittedError(StateError):
    """A weekly diagnostic already exists for this user and week anchor."""

    def __init__(self, user_id: object, week_starting: object) -> None:
        super().__init__(
            f"Weekly diagnostic already submitted for user {user_id} "
            f"(week starting {week_starting})"
        )
        self.user_id = user_id
        self.week_starting = week_starting


class RepositoryError(SelfPatchException):
    """Storage failures (connection refused, constraint violation, bad query)."""
