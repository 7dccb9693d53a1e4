"""Wager state machines. Transitions are one-directional."""

from __future__ import annotations

from streakbet.errors import InvalidStateError

ACTIVE = "active"
WON = "won"
LOST = "lost"
TIED = "tied"

PENDING = "pending"
ACCEPTED = "accepted"
DECLINED = "declined"
COMPLETED = "completed"

SOLO = "solo"
FRIEND_CHALLENGE = "friend_challenge"

STATUS_TRANSITIONS: dict[str, list[str]] = {
    ACTIVE: [WON, LOST, TIED],
    WON: [],
    LOST: [],
    TIED: [],
}

CHALLENGE_TRANSITIONS: dict[str, list[str]] = {
    PENDING: [ACTIVE, ACCEPTED, DECLINED],
    ACCEPTED: [ACTIVE, COMPLETED],
    ACTIVE: [COMPLETED],
    DECLINED: [],
    COMPLETED: [],
}


def validate_transition(current: str, target: str, transitions: dict[str, list[str]] = STATUS_TRANSITIONS) -> None:
    """Raise InvalidStateError if current → target is not allowed."""
    if target not in transitions.get(current, []):
        raise InvalidStateError(f"Invalid transition: {current} -> {target}")


def validate_challenge_transition(current: str | None, target: str) -> None:
    validate_transition(current or PENDING, target, CHALLENGE_TRANSITIONS)
