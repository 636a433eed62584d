"""Rule toggles and the declarative phase graph."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional

import yaml
from pydantic import BaseModel, Field

from .actions import ActionKind
from .phases import PhaseType, parse_phase
from .roles import RoleType

# Phase timeouts in seconds. Data for an external scheduler, never enforced here.
DEFAULT_PHASE_TIMEOUT = 30.0
DAY_PHASE_TIMEOUT = 60.0    # Speeches take longer
VOTE_PHASE_TIMEOUT = 30.0
NIGHT_PHASE_TIMEOUT = 15.0
WOLF_PHASE_TIMEOUT = 30.0   # The pack needs time to agree

DEFAULT_CONFIG_PATH = "config/game.yaml"


@dataclass(frozen=True)
class PhaseStep:
    """One ordered step of a phase: which role uses which action."""
    role: RoleType
    action: ActionKind
    order: int = 0
    required: bool = False
    multiple: bool = False  # Several players share the step (e.g. the pack)


@dataclass(frozen=True)
class PhaseConfig:
    """Steps, timeout and declared successor of a phase."""
    phase: PhaseType
    steps: tuple[PhaseStep, ...] = ()
    timeout: float = DEFAULT_PHASE_TIMEOUT
    next_phase: Optional[PhaseType] = None


def _announce() -> PhaseStep:
    return PhaseStep(role=RoleType.GOD, action=ActionKind.ANNOUNCE, order=0, required=True)


def standard_day_phase() -> PhaseConfig:
    return PhaseConfig(
        phase=PhaseType.DAY,
        steps=(
            _announce(),
            PhaseStep(role=RoleType.ANY, action=ActionKind.SPEAK, order=1, multiple=True),
        ),
        timeout=DAY_PHASE_TIMEOUT,
        next_phase=PhaseType.VOTE,
    )


def standard_vote_phase() -> PhaseConfig:
    return PhaseConfig(
        phase=PhaseType.VOTE,
        steps=(
            _announce(),
            PhaseStep(role=RoleType.ANY, action=ActionKind.VOTE, order=1, required=True, multiple=True),
        ),
        timeout=VOTE_PHASE_TIMEOUT,
        next_phase=PhaseType.NIGHT_GUARD,
    )


def hunter_phase(phase: PhaseType, next_phase: PhaseType) -> PhaseConfig:
    """Hunter phases return to wherever the game was heading."""
    return PhaseConfig(
        phase=phase,
        steps=(
            _announce(),
            PhaseStep(role=RoleType.HUNTER, action=ActionKind.SHOOT, order=1),
            PhaseStep(role=RoleType.HUNTER, action=ActionKind.SKIP, order=2),
        ),
        timeout=NIGHT_PHASE_TIMEOUT,
        next_phase=next_phase,
    )


def night_guard_phase() -> PhaseConfig:
    return PhaseConfig(
        phase=PhaseType.NIGHT_GUARD,
        steps=(_announce(), PhaseStep(role=RoleType.GUARD, action=ActionKind.PROTECT, order=1)),
        timeout=NIGHT_PHASE_TIMEOUT,
        next_phase=PhaseType.NIGHT_WOLF,
    )


def night_wolf_phase() -> PhaseConfig:
    return PhaseConfig(
        phase=PhaseType.NIGHT_WOLF,
        steps=(
            _announce(),
            PhaseStep(role=RoleType.WEREWOLF, action=ActionKind.KILL, order=1, required=True, multiple=True),
        ),
        timeout=WOLF_PHASE_TIMEOUT,
        next_phase=PhaseType.NIGHT_WITCH,
    )


def night_witch_phase() -> PhaseConfig:
    return PhaseConfig(
        phase=PhaseType.NIGHT_WITCH,
        steps=(
            _announce(),
            PhaseStep(role=RoleType.WITCH, action=ActionKind.ANTIDOTE, order=1),
            PhaseStep(role=RoleType.WITCH, action=ActionKind.POISON, order=2),
        ),
        timeout=NIGHT_PHASE_TIMEOUT,
        next_phase=PhaseType.NIGHT_SEER,
    )


def night_seer_phase() -> PhaseConfig:
    return PhaseConfig(
        phase=PhaseType.NIGHT_SEER,
        steps=(_announce(), PhaseStep(role=RoleType.SEER, action=ActionKind.CHECK, order=1)),
        timeout=NIGHT_PHASE_TIMEOUT,
        next_phase=PhaseType.NIGHT_RESOLVE,
    )


def night_resolve_phase() -> PhaseConfig:
    # Goes to DAY unless a hunter died, see PhaseManager.next_phase_after
    return PhaseConfig(
        phase=PhaseType.NIGHT_RESOLVE,
        steps=(_announce(),),
        timeout=NIGHT_PHASE_TIMEOUT,
        next_phase=PhaseType.DAY,
    )


def default_phases() -> dict[PhaseType, PhaseConfig]:
    """The standard nine-phase graph."""
    return {
        PhaseType.DAY: standard_day_phase(),
        PhaseType.VOTE: standard_vote_phase(),
        PhaseType.DAY_HUNTER: hunter_phase(PhaseType.DAY_HUNTER, PhaseType.NIGHT_GUARD),
        PhaseType.NIGHT_GUARD: night_guard_phase(),
        PhaseType.NIGHT_WOLF: night_wolf_phase(),
        PhaseType.NIGHT_WITCH: night_witch_phase(),
        PhaseType.NIGHT_SEER: night_seer_phase(),
        PhaseType.NIGHT_RESOLVE: night_resolve_phase(),
        PhaseType.NIGHT_HUNTER: hunter_phase(PhaseType.NIGHT_HUNTER, PhaseType.DAY),
    }


@dataclass(frozen=True)
class GameConfig:
    """Configuration for a game. Immutable once built."""

    # Rule variants
    witch_can_save_self: bool = False
    guard_can_protect_self: bool = True
    guard_can_repeat: bool = False
    same_guard_kill_is_empty: bool = True  # Guarded victim of the pack means no death

    default_timeout: float = DEFAULT_PHASE_TIMEOUT
    phases: Mapping[PhaseType, PhaseConfig] = field(default_factory=default_phases)

    def __post_init__(self):
        object.__setattr__(self, "phases", MappingProxyType(dict(self.phases)))

    def with_rules(self, **rules: Any) -> GameConfig:
        """Return a copy with some rule toggles changed."""
        return replace(self, **rules)

    def timeout_for(self, phase: PhaseType) -> float:
        """Configured timeout of a phase, the default for unknown phases."""
        phase_config = self.phases.get(phase)
        if phase_config is None:
            return self.default_timeout
        return phase_config.timeout

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> GameConfig:
        """Build a config from the `rules` section of a config file.

        Raises:
            ValueError: On unknown keys, phases or malformed values.
        """
        rules = RulesModel.model_validate(dict(data or {}))

        phases = default_phases()
        for name, override in rules.phases.items():
            phase = parse_phase(name)
            if phase not in phases:
                raise ValueError(f"Phase {name} cannot be configured")
            current = phases[phase]
            if override.timeout is not None:
                current = replace(current, timeout=override.timeout)
            if override.next_phase is not None:
                successor = parse_phase(override.next_phase)
                # START only precedes the first night; seating reopens there
                if successor == PhaseType.START:
                    raise ValueError(f"Phase {name} cannot lead back to start")
                current = replace(current, next_phase=successor)
            phases[phase] = current

        return cls(
            witch_can_save_self=rules.witch_can_save_self,
            guard_can_protect_self=rules.guard_can_protect_self,
            guard_can_repeat=rules.guard_can_repeat,
            same_guard_kill_is_empty=rules.same_guard_kill_is_empty,
            default_timeout=rules.default_timeout,
            phases=phases,
        )


class PhaseOverride(BaseModel):
    """Per-phase overrides accepted in a config file."""
    model_config = {"extra": "forbid"}

    timeout: Optional[float] = Field(default=None, gt=0)
    next_phase: Optional[str] = None


class RulesModel(BaseModel):
    """Schema of the `rules` section of a config file."""
    model_config = {"extra": "forbid"}

    witch_can_save_self: bool = False
    guard_can_protect_self: bool = True
    guard_can_repeat: bool = False
    same_guard_kill_is_empty: bool = True
    default_timeout: float = Field(default=DEFAULT_PHASE_TIMEOUT, gt=0)
    phases: dict[str, PhaseOverride] = Field(default_factory=dict)


def load_config(config_path: str | Path = DEFAULT_CONFIG_PATH) -> dict[str, Any]:
    """Load a game configuration document from a YAML file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the document isn't a mapping.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping")
    return data
