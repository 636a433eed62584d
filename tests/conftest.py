"""Shared pytest fixtures for unit and integration tests."""

from typing import Callable, Optional

import pytest

from werewolf.engine.actions import ActionKind, SubmittedAction
from werewolf.engine.config import GameConfig
from werewolf.engine.effects import Effect
from werewolf.engine.game import Game
from werewolf.engine.phases import PhaseType
from werewolf.engine.roles import RoleType
from werewolf.engine.state import GameState, StateSnapshot

# Two wolves against six good players
STANDARD_ROSTER = [
    ("wolf1", RoleType.WEREWOLF),
    ("wolf2", RoleType.WEREWOLF),
    ("seer", RoleType.SEER),
    ("witch", RoleType.WITCH),
    ("guard", RoleType.GUARD),
    ("hunter", RoleType.HUNTER),
    ("v1", RoleType.VILLAGER),
    ("v2", RoleType.VILLAGER),
]


def action(player_id: str, kind: ActionKind, target_id: str = "", content: str = "") -> SubmittedAction:
    """Shorthand for building a submitted action."""
    return SubmittedAction(player_id=player_id, kind=kind, target_id=target_id, content=content)


@pytest.fixture
def config() -> GameConfig:
    """Standard rules and phase graph"""
    return GameConfig()


@pytest.fixture
def state() -> GameState:
    """State seated with the standard roster, still in START"""
    game_state = GameState()
    for player_id, role in STANDARD_ROSTER:
        game_state.add_player(player_id, role)
    return game_state


@pytest.fixture
def make_snapshot(state: GameState) -> Callable[..., StateSnapshot]:
    """Build a snapshot of the standard roster in a phase, after some effects"""

    def _make(phase: PhaseType = PhaseType.NIGHT_GUARD, effects: Optional[list[Effect]] = None) -> StateSnapshot:
        if state.phase != phase:
            state.transition_phase(phase)
        for effect in effects or []:
            state.apply_effect(effect)
        return state.snapshot()

    return _make


@pytest.fixture
def game() -> Game:
    """Unstarted game with the standard roster"""
    new_game = Game()
    for player_id, role in STANDARD_ROSTER:
        new_game.add_player(player_id, role)
    return new_game


@pytest.fixture
def started_game(game: Game) -> Game:
    """Standard game in the first night guard phase"""
    game.start()
    return game


@pytest.fixture
def advance_to() -> Callable[[Game, PhaseType], list[Effect]]:
    """End sub-steps until the game reaches a phase; returns every effect produced"""

    def _advance(target_game: Game, phase: PhaseType) -> list[Effect]:
        effects: list[Effect] = []
        for _ in range(20):
            if target_game.phase == phase:
                return effects
            effects.extend(target_game.end_sub_step())
        raise AssertionError(f"Game never reached {phase.value}, stuck in {target_game.phase.value}")

    return _advance
