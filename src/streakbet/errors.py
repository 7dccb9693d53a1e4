"""Domain error taxonomy.

Services raise these; the HTTP layer maps ``status_code`` to the response.
They subclass ValueError so existing ``except ValueError`` call sites keep working.
"""

from __future__ import annotations


class StreakbetError(ValueError):
    """Base class for errors reported synchronously to the caller."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(StreakbetError):
    """User, season or wager does not exist."""

    status_code = 404


class InvalidStateError(StreakbetError):
    """Season not active for the date, wager already resolved, duplicate active bet."""

    status_code = 409


class RuleViolationError(StreakbetError):
    """Amount or date out of the allowed bounds, insufficient XP."""

    status_code = 400


class ForbiddenError(StreakbetError):
    """Caller is not a participant allowed to act on the resource."""

    status_code = 403
