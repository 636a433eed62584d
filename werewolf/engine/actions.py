"""Player actions submitted during a phase."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .phases import PhaseType


class ActionKind(Enum):
    """Kinds of actions (skills) a player can use."""
    ANNOUNCE = "announce"  # Narrator only
    SPEAK = "speak"
    VOTE = "vote"
    KILL = "kill"
    PROTECT = "protect"
    ANTIDOTE = "antidote"
    POISON = "poison"
    CHECK = "check"
    SHOOT = "shoot"
    SKIP = "skip"


@dataclass(frozen=True)
class SubmittedAction:
    """One player's declared action for the current phase.

    `phase` and `round` are stamped by the game when the action is accepted;
    callers leave them unset.
    """
    player_id: str
    kind: ActionKind
    target_id: str = ""
    content: str = ""  # Speech text, SPEAK only
    phase: Optional[PhaseType] = None
    round: int = 0

    def stamped(self, phase: PhaseType, round_number: int) -> SubmittedAction:
        """Return a copy stamped with the phase and round it was accepted in."""
        return replace(self, phase=phase, round=round_number)


def parse_action(value: str) -> ActionKind:
    """Parse an action name from config or console input."""
    try:
        return ActionKind(value.strip().lower())
    except ValueError:
        raise ValueError(
            f"Unknown action: {value}. Available: {[a.value for a in ActionKind]}"
        ) from None
