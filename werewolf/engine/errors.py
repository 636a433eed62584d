"""Typed game errors with stable codes."""

from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    """Stable error codes surfaced to callers."""
    UNSPECIFIED = "unspecified"
    PLAYER_NOT_FOUND = "player_not_found"
    PLAYER_DEAD = "player_dead"
    TARGET_NOT_FOUND = "target_not_found"
    TARGET_DEAD = "target_dead"
    SKILL_NOT_ALLOWED = "skill_not_allowed"
    GAME_NOT_STARTED = "game_not_started"
    GAME_ENDED = "game_ended"
    INVALID_PHASE = "invalid_phase"
    MESSAGE_NOT_ALLOWED = "message_not_allowed"


DEFAULT_MESSAGES = {
    ErrorCode.PLAYER_NOT_FOUND: "player not found",
    ErrorCode.PLAYER_DEAD: "player is dead",
    ErrorCode.TARGET_NOT_FOUND: "target not found",
    ErrorCode.TARGET_DEAD: "target is dead",
    ErrorCode.SKILL_NOT_ALLOWED: "skill not allowed in this phase",
    ErrorCode.GAME_NOT_STARTED: "game not started",
    ErrorCode.GAME_ENDED: "game has ended",
    ErrorCode.INVALID_PHASE: "invalid phase",
    ErrorCode.MESSAGE_NOT_ALLOWED: "message not allowed in this phase",
}


class GameError(Exception):
    """A rule or lifecycle violation reported to the caller.

    Validation produces these as values; the `Game` facade raises them.
    """

    def __init__(self, code: ErrorCode, message: Optional[str] = None):
        self.code = code
        self.message = message or DEFAULT_MESSAGES.get(code, code.value)
        super().__init__(self.message)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GameError):
            return NotImplemented
        return self.code == other.code and self.message == other.message

    def __hash__(self) -> int:
        return hash((self.code, self.message))

    def __repr__(self) -> str:
        return f"GameError({self.code.name}, {self.message!r})"


def is_error_code(err: Optional[BaseException], code: ErrorCode) -> bool:
    """Check whether an error carries the given code."""
    return isinstance(err, GameError) and err.code == code


def error_code_of(err: Optional[BaseException]) -> ErrorCode:
    """Get the code of an error, UNSPECIFIED for anything that isn't a GameError."""
    if isinstance(err, GameError):
        return err.code
    return ErrorCode.UNSPECIFIED


def wrap_error(code: ErrorCode, fmt: str, *args: object) -> GameError:
    """Build a GameError with a formatted message."""
    return GameError(code, fmt % args if args else fmt)
