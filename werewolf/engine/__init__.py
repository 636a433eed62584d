"""Game engine - rules, phases, effects and resolution."""

from .actions import ActionKind, SubmittedAction
from .config import GameConfig, PhaseConfig, PhaseStep, load_config
from .effects import Effect, EffectKind, GameEvent
from .errors import ErrorCode, GameError
from .phases import PhaseManager, PhaseType, phase_name
from .roles import ROLES, Camp, Role, RoleType, get_role
from .state import GameState, PlayerInfo, RoundContext, StateSnapshot

__all__ = [
    "ActionKind",
    "SubmittedAction",
    "GameConfig",
    "PhaseConfig",
    "PhaseStep",
    "load_config",
    "Effect",
    "EffectKind",
    "GameEvent",
    "ErrorCode",
    "GameError",
    "PhaseManager",
    "PhaseType",
    "phase_name",
    "ROLES",
    "Camp",
    "Role",
    "RoleType",
    "get_role",
    "GameState",
    "PlayerInfo",
    "RoundContext",
    "StateSnapshot",
]
