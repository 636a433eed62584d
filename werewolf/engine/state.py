"""Authoritative game state: the player roster and per-round scratch state."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from .effects import Effect, EffectKind
from .phases import PhaseType
from .roles import Camp, RoleType, default_camp


@dataclass
class PlayerRecord:
    """A seated player. Owned by GameState, never removed."""
    player_id: str
    role: RoleType
    camp: Camp
    alive: bool = True
    has_antidote: bool = False  # Witch only
    has_poison: bool = False    # Witch only
    last_protected: str = ""    # Guard only


@dataclass(frozen=True)
class PlayerInfo:
    """Read-only view of a player."""
    player_id: str
    role: RoleType
    camp: Camp
    alive: bool
    has_antidote: bool = False
    has_poison: bool = False
    last_protected: str = ""
    protected: bool = False  # Guarded this round


@dataclass
class RoundContext:
    """Scratch state of one night-to-night round."""
    kill_target: str = ""
    protected: set[str] = field(default_factory=set)
    saved: set[str] = field(default_factory=set)
    poisoned: set[str] = field(default_factory=set)
    hunter_triggered: bool = False
    triggered_hunter_id: str = ""

    def is_protected(self, player_id: str) -> bool:
        return player_id in self.protected

    def is_saved(self, player_id: str) -> bool:
        return player_id in self.saved

    def is_poisoned(self, player_id: str) -> bool:
        return player_id in self.poisoned

    def copy(self) -> RoundContext:
        return RoundContext(
            kill_target=self.kill_target,
            protected=set(self.protected),
            saved=set(self.saved),
            poisoned=set(self.poisoned),
            hunter_triggered=self.hunter_triggered,
            triggered_hunter_id=self.triggered_hunter_id,
        )


@dataclass(frozen=True)
class StateSnapshot:
    """Immutable copy of the state handed to resolvers and validation."""
    phase: PhaseType
    round: int
    players: Mapping[str, PlayerInfo]
    round_ctx: RoundContext

    def player(self, player_id: str) -> Optional[PlayerInfo]:
        return self.players.get(player_id)

    def alive_player_ids(self, role: Optional[RoleType] = None) -> list[str]:
        return [
            p.player_id for p in self.players.values()
            if p.alive and (role is None or p.role == role)
        ]


class GameState:
    """The single state store of a game.

    Every method takes the state's own lock, so the store stays consistent
    even when driven without the Game facade.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._players: dict[str, PlayerRecord] = {}
        self._phase = PhaseType.START
        self._round = 0
        self._sub_step = 0
        self._round_ctx = RoundContext()

    @property
    def phase(self) -> PhaseType:
        with self._lock:
            return self._phase

    @property
    def round(self) -> int:
        with self._lock:
            return self._round

    @property
    def sub_step(self) -> int:
        with self._lock:
            return self._sub_step

    def advance_sub_step(self) -> int:
        with self._lock:
            self._sub_step += 1
            return self._sub_step

    def add_player(self, player_id: str, role: RoleType, camp: Optional[Camp] = None) -> None:
        """Seat a player.

        Args:
            player_id: Unique id of the player.
            role: Role the player holds.
            camp: Camp override; defaults to the camp of the role.

        Raises:
            ValueError: If the id is taken or the role can't be seated.
        """
        if role in (RoleType.GOD, RoleType.ANY):
            raise ValueError(f"Role {role.value} cannot be seated")

        with self._lock:
            if player_id in self._players:
                raise ValueError(f"Player {player_id} already exists")
            is_witch = role == RoleType.WITCH
            self._players[player_id] = PlayerRecord(
                player_id=player_id,
                role=role,
                camp=camp or default_camp(role),
                has_antidote=is_witch,
                has_poison=is_witch,
            )

    def _info(self, record: PlayerRecord) -> PlayerInfo:
        return PlayerInfo(
            player_id=record.player_id,
            role=record.role,
            camp=record.camp,
            alive=record.alive,
            has_antidote=record.has_antidote,
            has_poison=record.has_poison,
            last_protected=record.last_protected,
            protected=self._round_ctx.is_protected(record.player_id),
        )

    def player(self, player_id: str) -> Optional[PlayerInfo]:
        with self._lock:
            record = self._players.get(player_id)
            if record is None:
                return None
            return self._info(record)

    def players(self) -> list[PlayerInfo]:
        """All players in seating order."""
        with self._lock:
            return [self._info(record) for record in self._players.values()]

    def alive_player_ids(self, role: Optional[RoleType] = None) -> list[str]:
        with self._lock:
            return [
                r.player_id for r in self._players.values()
                if r.alive and (role is None or r.role == role)
            ]

    def apply_effect(self, effect: Effect) -> None:
        """Apply one effect. Canceled effects change nothing."""
        with self._lock:
            if effect.canceled:
                return

            kind = effect.kind
            target = self._players.get(effect.target_id)
            source = self._players.get(effect.source_id)
            ctx = self._round_ctx

            if kind.is_death:
                if target is not None:
                    target.alive = False
            elif kind == EffectKind.PROTECT:
                ctx.protected.add(effect.target_id)
            elif kind == EffectKind.SAVE:
                if target is not None:
                    target.alive = True
                ctx.saved.add(effect.target_id)
            elif kind == EffectKind.SET_NIGHT_KILL:
                ctx.kill_target = effect.target_id
            elif kind == EffectKind.CLEAR_NIGHT_KILL:
                ctx.kill_target = ""
            elif kind == EffectKind.SET_LAST_PROTECTED:
                if source is not None:
                    source.last_protected = effect.target_id
            elif kind == EffectKind.USE_ANTIDOTE:
                if source is not None:
                    source.has_antidote = False
            elif kind == EffectKind.USE_POISON:
                if source is not None:
                    source.has_poison = False
                ctx.poisoned.add(effect.target_id)
            elif kind == EffectKind.HUNTER_TRIGGERED:
                ctx.hunter_triggered = True
                ctx.triggered_hunter_id = effect.target_id
            # CHECK, SKIP and NO_ELIMINATION are informational

    def reset_round(self) -> None:
        """Start a fresh round context."""
        with self._lock:
            self._round_ctx = RoundContext()
            self._sub_step = 0

    def transition_phase(self, phase: PhaseType) -> None:
        """Enter a phase. The first night sub-phase opens a new round."""
        with self._lock:
            self._phase = phase
            if phase == PhaseType.NIGHT_GUARD:
                self._round += 1
                self.reset_round()

    def check_victory(self) -> Optional[Camp]:
        """Winning camp, or None while the game goes on.

        Good wins once no evil player is alive; evil wins once it matches the
        living good players.
        """
        with self._lock:
            good_alive = sum(1 for r in self._players.values() if r.alive and r.camp == Camp.GOOD)
            evil_alive = sum(1 for r in self._players.values() if r.alive and r.camp == Camp.EVIL)

        if evil_alive == 0:
            return Camp.GOOD
        if good_alive <= evil_alive:
            return Camp.EVIL
        return None

    def wolf_teammates(self, player_id: str) -> list[str]:
        """Other werewolves, dead or alive. Empty for anyone but a werewolf."""
        with self._lock:
            record = self._players.get(player_id)
            if record is None or record.role != RoleType.WEREWOLF:
                return []
            return [
                r.player_id for r in self._players.values()
                if r.role == RoleType.WEREWOLF and r.player_id != player_id
            ]

    def is_protected(self, player_id: str) -> bool:
        with self._lock:
            return self._round_ctx.is_protected(player_id)

    def can_use_antidote(self, player_id: str) -> bool:
        with self._lock:
            record = self._players.get(player_id)
            return record is not None and record.has_antidote

    def can_use_poison(self, player_id: str) -> bool:
        with self._lock:
            record = self._players.get(player_id)
            return record is not None and record.has_poison

    def can_protect(self, guard_id: str, target_id: str, can_repeat: bool) -> bool:
        """Whether the guard may protect the target under the repeat rule."""
        with self._lock:
            record = self._players.get(guard_id)
            if record is None:
                return False
            return can_repeat or record.last_protected != target_id

    def round_context(self) -> RoundContext:
        """Copy of the current round context."""
        with self._lock:
            return self._round_ctx.copy()

    def snapshot(self) -> StateSnapshot:
        with self._lock:
            return StateSnapshot(
                phase=self._phase,
                round=self._round,
                players=MappingProxyType({
                    player_id: self._info(record)
                    for player_id, record in self._players.items()
                }),
                round_ctx=self._round_ctx.copy(),
            )
