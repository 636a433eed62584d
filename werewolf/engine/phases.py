"""Game phase definitions and transitions."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional, Sequence

from .actions import ActionKind, SubmittedAction
from .effects import Effect, EffectKind
from .errors import ErrorCode, GameError
from .resolvers import (
    resolve_day,
    resolve_guard,
    resolve_hunter,
    resolve_night,
    resolve_seer,
    resolve_vote,
    resolve_witch,
    resolve_wolf,
)
from .roles import RoleType

if TYPE_CHECKING:
    from .config import GameConfig, PhaseConfig, PhaseStep
    from .state import StateSnapshot


class PhaseType(Enum):
    """Phases of the werewolf game."""
    START = "start"                  # Roster setup, before the first night
    NIGHT_GUARD = "night_guard"      # Guard protects
    NIGHT_WOLF = "night_wolf"        # Werewolves pick a victim
    NIGHT_WITCH = "night_witch"      # Witch saves and/or poisons
    NIGHT_SEER = "night_seer"        # Seer checks a camp
    NIGHT_RESOLVE = "night_resolve"  # Night deaths are applied
    NIGHT_HUNTER = "night_hunter"    # Hunter killed at night shoots
    DAY = "day"                      # Players speak
    VOTE = "vote"                    # Players vote to eliminate
    DAY_HUNTER = "day_hunter"        # Hunter voted out shoots
    END = "end"                      # Game has ended

    @property
    def is_night(self) -> bool:
        return self.value.startswith("night_")

    @property
    def is_hunter_phase(self) -> bool:
        return self in (PhaseType.NIGHT_HUNTER, PhaseType.DAY_HUNTER)


def parse_phase(value: str) -> PhaseType:
    """Parse a phase name from config data."""
    try:
        return PhaseType(value.strip().lower())
    except ValueError:
        raise ValueError(
            f"Unknown phase: {value}. Available: {[p.value for p in PhaseType]}"
        ) from None


def phase_name(phase: PhaseType, round_number: int) -> str:
    """Get a human-readable phase name with round number."""
    if phase.is_night:
        return f"night_{round_number}_{phase.value[len('night_'):]}"
    elif phase == PhaseType.DAY:
        return f"day_{round_number}_discussion"
    elif phase == PhaseType.VOTE:
        return f"day_{round_number}_vote"
    elif phase == PhaseType.DAY_HUNTER:
        return f"day_{round_number}_hunter"
    return phase.value


Resolver = Callable[[Sequence[SubmittedAction], "StateSnapshot", "GameConfig"], list[Effect]]


class PhaseManager:
    """Holds the phase graph, per-phase action tables and resolvers."""

    def __init__(self, config: GameConfig):
        """Initialize the phase manager.

        Args:
            config: Game configuration carrying the phase graph.
        """
        self.config = config
        self._resolvers: dict[PhaseType, Resolver] = {
            PhaseType.DAY: resolve_day,
            PhaseType.VOTE: resolve_vote,
            PhaseType.NIGHT_GUARD: resolve_guard,
            PhaseType.NIGHT_WOLF: resolve_wolf,
            PhaseType.NIGHT_WITCH: resolve_witch,
            PhaseType.NIGHT_SEER: resolve_seer,
            PhaseType.NIGHT_RESOLVE: resolve_night,
            # Night and day hunters share one resolver
            PhaseType.NIGHT_HUNTER: resolve_hunter,
            PhaseType.DAY_HUNTER: resolve_hunter,
        }
        self._action_tables = {
            phase: self._build_action_table(phase_config.steps)
            for phase, phase_config in config.phases.items()
        }

    @staticmethod
    def _build_action_table(steps: Sequence[PhaseStep]) -> dict[RoleType, list[ActionKind]]:
        """Derive {role -> allowed actions} from the ordered steps of a phase."""
        table: dict[RoleType, list[ActionKind]] = {}
        for step in sorted(steps, key=lambda s: s.order):
            if step.role == RoleType.GOD:
                continue
            actions = table.setdefault(step.role, [])
            if step.action not in actions:
                actions.append(step.action)
        return table

    def phase_config(self, phase: PhaseType) -> Optional[PhaseConfig]:
        """Get the configuration of a phase, None if it isn't in the graph."""
        return self.config.phases.get(phase)

    def resolver(self, phase: PhaseType) -> Optional[Resolver]:
        """Get the resolver of a phase."""
        return self._resolvers.get(phase)

    def required_roles(self, phase: PhaseType) -> list[RoleType]:
        """Roles named by the phase steps, in step order, narrator included."""
        phase_config = self.phase_config(phase)
        if phase_config is None:
            return []

        roles: list[RoleType] = []
        for step in sorted(phase_config.steps, key=lambda s: s.order):
            if step.role not in roles:
                roles.append(step.role)
        return roles

    def active_roles(self, phase: PhaseType) -> list[RoleType]:
        """Roles whose players act in the phase (narrator excluded)."""
        return list(self._action_tables.get(phase, {}))

    def action_table(self, phase: PhaseType) -> dict[RoleType, list[ActionKind]]:
        """Copy of the {role -> allowed actions} table of a phase."""
        return {role: list(actions) for role, actions in self._action_tables.get(phase, {}).items()}

    def allowed_actions(self, phase: PhaseType, role: RoleType) -> list[ActionKind]:
        """Actions a role may use in a phase. ANY steps apply to every role."""
        table = self._action_tables.get(phase, {})
        allowed = list(table.get(role, []))
        if role != RoleType.ANY:
            for action in table.get(RoleType.ANY, []):
                if action not in allowed:
                    allowed.append(action)
        return allowed

    def next_phase(self, current: PhaseType) -> PhaseType:
        """Declared successor of a phase."""
        if current == PhaseType.START:
            return PhaseType.NIGHT_GUARD

        phase_config = self.phase_config(current)
        if phase_config is not None and phase_config.next_phase is not None:
            return phase_config.next_phase

        return PhaseType.END

    def next_phase_after(self, current: PhaseType, effects: Sequence[Effect]) -> PhaseType:
        """Successor of a phase, rerouted to a hunter phase when a hunter just died."""
        if hunter_just_triggered(effects):
            if current == PhaseType.NIGHT_RESOLVE:
                return PhaseType.NIGHT_HUNTER
            if current == PhaseType.VOTE:
                return PhaseType.DAY_HUNTER
        return self.next_phase(current)

    def validate(self, action: SubmittedAction, snapshot: StateSnapshot) -> Optional[GameError]:
        """Check an action against the current phase.

        Returns:
            The first rule the action breaks, or None if it may be buffered.
        """
        player = snapshot.player(action.player_id)
        if player is None:
            return GameError(ErrorCode.PLAYER_NOT_FOUND)

        # A hunter who just died may still shoot during the hunter phase
        triggered = snapshot.round_ctx.triggered_hunter_id
        is_triggered_hunter = snapshot.phase.is_hunter_phase and player.player_id == triggered
        if not player.alive and not is_triggered_hunter:
            return GameError(ErrorCode.PLAYER_DEAD)

        if snapshot.phase.is_hunter_phase and not is_triggered_hunter:
            return GameError(ErrorCode.SKILL_NOT_ALLOWED)

        if action.kind not in self.allowed_actions(snapshot.phase, player.role):
            return GameError(ErrorCode.SKILL_NOT_ALLOWED)

        if action.kind == ActionKind.SKIP:
            return None

        if action.target_id:
            target = snapshot.player(action.target_id)
            if target is None:
                return GameError(ErrorCode.TARGET_NOT_FOUND)
            # The wolves' victim isn't dead yet when the witch saves them
            if not target.alive and action.kind != ActionKind.ANTIDOTE:
                return GameError(ErrorCode.TARGET_DEAD)

        return None


def hunter_just_triggered(effects: Sequence[Effect]) -> bool:
    """True if a hunter died among the effects of the phase that just ended."""
    return any(
        effect.kind == EffectKind.HUNTER_TRIGGERED and not effect.canceled
        for effect in effects
    )
