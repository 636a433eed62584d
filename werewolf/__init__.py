"""Phase-driven Werewolf resolution engine."""

from .engine.game import Game, PhaseInfo, RolePhaseInfo

__all__ = ["Game", "PhaseInfo", "RolePhaseInfo"]
