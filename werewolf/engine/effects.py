"""Effects: cancelable mutation intents produced by resolvers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, ClassVar, Optional

from pydantic import BaseModel, Field

from .roles import Camp


class EffectKind(Enum):
    """Kinds of effects. Internal kinds never reach observers."""
    KILL = "kill"
    POISON = "poison"
    ELIMINATE = "eliminate"
    SHOOT = "shoot"
    PROTECT = "protect"
    SAVE = "save"
    CHECK = "check"
    SKIP = "skip"
    NO_ELIMINATION = "no_elimination"
    HUNTER_TRIGGERED = "hunter_triggered"

    # Internal bookkeeping
    SET_NIGHT_KILL = "set_night_kill"
    CLEAR_NIGHT_KILL = "clear_night_kill"
    SET_LAST_PROTECTED = "set_last_protected"
    USE_ANTIDOTE = "use_antidote"
    USE_POISON = "use_poison"

    @property
    def is_internal(self) -> bool:
        return self in _INTERNAL_KINDS

    @property
    def is_death(self) -> bool:
        """Effects that leave their target dead when applied."""
        return self in (EffectKind.KILL, EffectKind.POISON, EffectKind.ELIMINATE, EffectKind.SHOOT)


_INTERNAL_KINDS = frozenset({
    EffectKind.SET_NIGHT_KILL,
    EffectKind.CLEAR_NIGHT_KILL,
    EffectKind.SET_LAST_PROTECTED,
    EffectKind.USE_ANTIDOTE,
    EffectKind.USE_POISON,
})

_BASE_FIELDS = ("source_id", "target_id", "canceled", "reason")


class GameEvent(BaseModel):
    """Externally visible notification built from an effect."""
    kind: str
    phase: str = ""  # Label of the phase the effect resolved in
    round: int = 0
    source_id: str = ""
    target_id: str = ""
    canceled: bool = False
    reason: str = ""
    data: dict[str, str] = Field(default_factory=dict)


def game_ended_event(winner: Camp, phase: str = "", round_number: int = 0) -> GameEvent:
    """Notification published once a camp has won."""
    return GameEvent(kind="game_ended", phase=phase, round=round_number, data={"winner": winner.value})


def _format_value(value: Any) -> str:
    """Render a payload value as event data."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (list, tuple, dict)):
        return json.dumps(value, sort_keys=True)
    if value is None:
        return ""
    return str(value)


@dataclass
class Effect:
    """Base effect: who caused it, who it lands on, and whether it was blocked.

    Subclasses fix `kind` and add typed payload fields.
    """
    kind: ClassVar[EffectKind]

    source_id: str = ""
    target_id: str = ""
    canceled: bool = False
    reason: str = ""

    def cancel(self, reason: str) -> Effect:
        """Mark the effect canceled. Returns self so resolvers can chain."""
        self.canceled = True
        self.reason = reason
        return self

    @property
    def is_internal(self) -> bool:
        return self.kind.is_internal

    def payload(self) -> dict[str, Any]:
        """Kind-specific fields of the effect."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name not in _BASE_FIELDS
        }

    def data(self) -> dict[str, str]:
        """Payload rendered as strings."""
        return {key: _format_value(value) for key, value in self.payload().items()}

    def to_event(self, phase: str = "", round_number: int = 0) -> GameEvent:
        return GameEvent(
            kind=self.kind.value,
            phase=phase,
            round=round_number,
            source_id=self.source_id,
            target_id=self.target_id,
            canceled=self.canceled,
            reason=self.reason,
            data=self.data(),
        )


@dataclass
class Kill(Effect):
    """The pack's victim dies during night resolution."""
    kind: ClassVar[EffectKind] = EffectKind.KILL


@dataclass
class Poison(Effect):
    """Witch poison death, or a refused poison when canceled."""
    kind: ClassVar[EffectKind] = EffectKind.POISON


@dataclass
class Eliminate(Effect):
    """Player voted out by the village."""
    kind: ClassVar[EffectKind] = EffectKind.ELIMINATE

    votes: int = 0
    voters: list[str] = field(default_factory=list)
    tally: dict[str, int] = field(default_factory=dict)


@dataclass
class Shoot(Effect):
    kind: ClassVar[EffectKind] = EffectKind.SHOOT


@dataclass
class Protect(Effect):
    kind: ClassVar[EffectKind] = EffectKind.PROTECT


@dataclass
class Save(Effect):
    """Witch antidote. Canceled saves carry why the antidote was refused."""
    kind: ClassVar[EffectKind] = EffectKind.SAVE


@dataclass
class Check(Effect):
    """Seer result: the camp of the target."""
    kind: ClassVar[EffectKind] = EffectKind.CHECK

    camp: Optional[Camp] = None
    is_good: bool = False


@dataclass
class Skip(Effect):
    kind: ClassVar[EffectKind] = EffectKind.SKIP


@dataclass
class NoElimination(Effect):
    """Vote ended without a unique winner."""
    kind: ClassVar[EffectKind] = EffectKind.NO_ELIMINATION

    result: str = "tie"
    tally: dict[str, int] = field(default_factory=dict)


@dataclass
class HunterTriggered(Effect):
    """A hunter died and gets a shot. `target_id` is the hunter."""
    kind: ClassVar[EffectKind] = EffectKind.HUNTER_TRIGGERED


@dataclass
class SetNightKill(Effect):
    kind: ClassVar[EffectKind] = EffectKind.SET_NIGHT_KILL


@dataclass
class ClearNightKill(Effect):
    kind: ClassVar[EffectKind] = EffectKind.CLEAR_NIGHT_KILL


@dataclass
class SetLastProtected(Effect):
    kind: ClassVar[EffectKind] = EffectKind.SET_LAST_PROTECTED


@dataclass
class UseAntidote(Effect):
    kind: ClassVar[EffectKind] = EffectKind.USE_ANTIDOTE


@dataclass
class UsePoison(Effect):
    kind: ClassVar[EffectKind] = EffectKind.USE_POISON


def external_events(effects: list[Effect], phase: str = "", round_number: int = 0) -> list[GameEvent]:
    """Project the externally visible effects to events, in order."""
    return [effect.to_event(phase, round_number) for effect in effects if not effect.is_internal]
