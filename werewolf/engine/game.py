"""Main game engine for Werewolf."""

import threading
from dataclasses import dataclass, field
from typing import Callable, Optional

from loguru import logger

from ..communication.channels import ChannelManager, Message
from .actions import ActionKind, SubmittedAction
from .config import GameConfig, PhaseStep
from .effects import Effect, GameEvent, external_events, game_ended_event
from .errors import ErrorCode, GameError
from .phases import PhaseManager, PhaseType, phase_name
from .roles import Camp, RoleType
from .state import GameState, PlayerInfo, RoundContext

EventHandler = Callable[[GameEvent], None]
MessageHandler = Callable[[Message], None]


@dataclass
class RolePhaseInfo:
    """What one role does and sees in the current phase."""
    player_ids: list[str] = field(default_factory=list)
    allowed_actions: list[ActionKind] = field(default_factory=list)
    teammates: dict[str, list[str]] = field(default_factory=dict)  # Werewolves only
    kill_target: str = ""  # Witch only


@dataclass
class PhaseInfo:
    """Who must act now and what each role may observe.

    Holds no message text; the narrator builds announcements from it.
    """
    phase: PhaseType
    round: int
    name: str
    timeout: float
    steps: list[PhaseStep] = field(default_factory=list)
    active_roles: list[RoleType] = field(default_factory=list)
    role_infos: dict[RoleType, RolePhaseInfo] = field(default_factory=dict)

    @property
    def needs_god_announcement(self) -> bool:
        return bool(self.steps) and self.steps[0].role == RoleType.GOD \
            and self.steps[0].action == ActionKind.ANNOUNCE

    @property
    def god_announcement_step(self) -> Optional[PhaseStep]:
        return self.steps[0] if self.needs_god_announcement else None

    @property
    def player_action_steps(self) -> list[PhaseStep]:
        return self.steps[1:] if self.needs_god_announcement else list(self.steps)


class Game:
    """The main Werewolf game engine.

    Every public method takes the game lock, then the state lock. Observers
    are called after the lock is released, so they may call back in.
    """

    def __init__(self, config: Optional[GameConfig] = None):
        """Initialize the game.

        Args:
            config: Game configuration. Defaults to the standard rules.
        """
        self.config = config or GameConfig()
        self.phase_manager = PhaseManager(self.config)
        self.state = GameState()
        self.channels = ChannelManager()

        self._lock = threading.RLock()
        self._pending: list[SubmittedAction] = []
        self._event_handlers: list[EventHandler] = []
        self._message_handlers: list[MessageHandler] = []
        self._winner: Optional[Camp] = None

    def add_player(self, player_id: str, role: RoleType, camp: Optional[Camp] = None) -> None:
        """Seat a player before the game starts.

        Raises:
            GameError: INVALID_PHASE once the game has started.
            ValueError: If the player id is already taken.
        """
        with self._lock:
            if self.state.phase != PhaseType.START:
                raise GameError(ErrorCode.INVALID_PHASE, "players can only be added before start")
            self.state.add_player(player_id, role, camp)
            logger.bind(player_id=player_id, role=role.value).debug("Player added")

    def start(self) -> None:
        """Enter the first night.

        Raises:
            GameError: GAME_NOT_STARTED if the game has already left its initial phase.
        """
        with self._lock:
            if self.state.phase != PhaseType.START:
                raise GameError(ErrorCode.GAME_NOT_STARTED, "game is not in its initial phase")

            wolves = [
                p.player_id for p in self.state.players()
                if p.role == RoleType.WEREWOLF
            ]
            self.channels.setup_werewolf_channel(wolves)
            self.state.transition_phase(PhaseType.NIGHT_GUARD)

            logger.bind(phase=PhaseType.NIGHT_GUARD.value, round=self.state.round).info(
                f"Game started with {len(self.state.players())} players"
            )

    def _check_running(self) -> None:
        phase = self.state.phase
        if phase == PhaseType.START:
            raise GameError(ErrorCode.GAME_NOT_STARTED)
        if phase == PhaseType.END:
            raise GameError(ErrorCode.GAME_ENDED)

    def submit_action(self, action: SubmittedAction) -> None:
        """Validate an action and buffer it until the phase ends.

        Raises:
            GameError: If the action breaks a rule of the current phase.
        """
        with self._lock:
            self._check_running()

            snapshot = self.state.snapshot()
            log = logger.bind(
                phase=snapshot.phase.value,
                round=snapshot.round,
                player_id=action.player_id,
                target_id=action.target_id,
                action=action.kind.value,
            )

            err = self.phase_manager.validate(action, snapshot)
            if err is not None:
                log.debug(f"Action rejected: {err.message}")
                raise err

            self._pending.append(action.stamped(snapshot.phase, snapshot.round))
            log.debug("Action buffered")

    def end_phase(self) -> list[Effect]:
        """Resolve the current phase and follow the declared phase graph.

        Returns:
            Every effect the phase produced, internal ones included.
        """
        return self._end_phase(reroute=False)

    def end_sub_step(self) -> list[Effect]:
        """Resolve the current sub-phase, detouring to a hunter phase when a hunter died."""
        return self._end_phase(reroute=True)

    def _end_phase(self, reroute: bool) -> list[Effect]:
        with self._lock:
            self._check_running()

            snapshot = self.state.snapshot()
            current = snapshot.phase
            label = phase_name(current, snapshot.round)
            log = logger.bind(phase=current.value, round=snapshot.round)

            actions = list(self._pending)
            self._pending.clear()

            resolver = self.phase_manager.resolver(current)
            effects = resolver(actions, snapshot, self.config) if resolver else []
            for effect in effects:
                self.state.apply_effect(effect)
            log.debug(f"Resolved {len(actions)} actions into {len(effects)} effects")

            events = external_events(effects, label, snapshot.round)

            winner = self.state.check_victory()
            if winner is not None:
                self._winner = winner
                self.state.transition_phase(PhaseType.END)
                events.append(game_ended_event(winner, label, snapshot.round))
                log.info(f"Game over: {winner.value} camp wins")
            else:
                if reroute:
                    next_phase = self.phase_manager.next_phase_after(current, effects)
                else:
                    next_phase = self.phase_manager.next_phase(current)
                self.state.transition_phase(next_phase)
                if next_phase != PhaseType.NIGHT_GUARD:
                    self.state.advance_sub_step()
                log.debug(f"Phase transition: {current.value} -> {next_phase.value}")

            handlers = list(self._event_handlers)

        self._publish_events(handlers, events)
        return effects

    def register_event_handler(self, handler: EventHandler) -> None:
        with self._lock:
            self._event_handlers.append(handler)

    def register_message_handler(self, handler: MessageHandler) -> None:
        with self._lock:
            self._message_handlers.append(handler)

    def _publish_events(self, handlers: list[EventHandler], events: list[GameEvent]) -> None:
        for event in events:
            for handler in handlers:
                try:
                    handler(event)
                except Exception:
                    logger.bind(event=event.kind).exception("Event handler failed")

    def _publish_message(self, handlers: list[MessageHandler], message: Message) -> None:
        for handler in handlers:
            try:
                handler(message)
            except Exception:
                logger.bind(player_id=message.speaker).exception("Message handler failed")

    def send_message(self, sender_id: str, content: str) -> Message:
        """Send a chat message to whoever may hear the sender right now.

        Raises:
            GameError: PLAYER_NOT_FOUND, PLAYER_DEAD or MESSAGE_NOT_ALLOWED.
        """
        with self._lock:
            self._check_running()

            sender = self.state.player(sender_id)
            if sender is None:
                raise GameError(ErrorCode.PLAYER_NOT_FOUND)
            if not sender.alive:
                raise GameError(ErrorCode.PLAYER_DEAD)

            phase = self.state.phase
            route = self.channels.route(sender, phase, self.state.players())
            if route is None:
                raise GameError(ErrorCode.MESSAGE_NOT_ALLOWED)

            round_number = self.state.round
            message = self.channels.post(
                route, sender_id, content, phase_name(phase, round_number), round_number
            )
            logger.bind(phase=phase.value, round=round_number, player_id=sender_id).debug(
                f"Message routed to {len(route.receivers)} players"
            )
            handlers = list(self._message_handlers)

        self._publish_message(handlers, message)
        return message

    def message_receivers(self, sender_id: str) -> list[str]:
        """Who would hear the sender now. Empty when they can't chat."""
        with self._lock:
            sender = self.state.player(sender_id)
            if sender is None:
                return []
            route = self.channels.route(sender, self.state.phase, self.state.players())
            return list(route.receivers) if route is not None else []

    @property
    def phase(self) -> PhaseType:
        with self._lock:
            return self.state.phase

    @property
    def round_number(self) -> int:
        with self._lock:
            return self.state.round

    @property
    def sub_step(self) -> int:
        """Phases completed in the current round.

        0 in NIGHT_GUARD, 1 in NIGHT_WOLF and so on; DAY reads 5 and VOTE 6
        when no hunter phase intervenes. Resets when the next night starts.
        """
        with self._lock:
            return self.state.sub_step

    @property
    def is_game_over(self) -> bool:
        with self._lock:
            return self.state.phase == PhaseType.END

    @property
    def winner(self) -> Optional[Camp]:
        with self._lock:
            return self._winner

    @property
    def night_kill_target(self) -> str:
        with self._lock:
            return self.state.round_context().kill_target

    def pending_actions(self) -> list[SubmittedAction]:
        """Actions buffered in the current phase."""
        with self._lock:
            return list(self._pending)

    def allowed_actions(self, player_id: str) -> list[ActionKind]:
        """Actions the player may submit now."""
        with self._lock:
            snapshot = self.state.snapshot()
            player = snapshot.player(player_id)
            if player is None:
                return []
            if snapshot.phase.is_hunter_phase:
                if player_id != snapshot.round_ctx.triggered_hunter_id:
                    return []
            elif not player.alive:
                return []
            return self.phase_manager.allowed_actions(snapshot.phase, player.role)

    def wolf_teammates(self, player_id: str) -> list[str]:
        with self._lock:
            return self.state.wolf_teammates(player_id)

    def player_info(self, player_id: str) -> Optional[PlayerInfo]:
        with self._lock:
            return self.state.player(player_id)

    def players(self) -> list[PlayerInfo]:
        with self._lock:
            return self.state.players()

    def round_context(self) -> RoundContext:
        with self._lock:
            return self.state.round_context()

    def phase_info(self) -> PhaseInfo:
        """Describe the current phase for the narrator."""
        with self._lock:
            snapshot = self.state.snapshot()
            phase = snapshot.phase
            phase_config = self.phase_manager.phase_config(phase)

            info = PhaseInfo(
                phase=phase,
                round=snapshot.round,
                name=phase_name(phase, snapshot.round),
                timeout=self.config.timeout_for(phase),
                steps=sorted(phase_config.steps, key=lambda s: s.order) if phase_config else [],
                active_roles=self.phase_manager.active_roles(phase),
            )

            for role in info.active_roles:
                if phase.is_hunter_phase and role == RoleType.HUNTER:
                    hunter_id = snapshot.round_ctx.triggered_hunter_id
                    player_ids = [hunter_id] if hunter_id else []
                elif role == RoleType.ANY:
                    player_ids = snapshot.alive_player_ids()
                else:
                    player_ids = snapshot.alive_player_ids(role)

                role_info = RolePhaseInfo(
                    player_ids=player_ids,
                    allowed_actions=self.phase_manager.allowed_actions(phase, role),
                )
                if role == RoleType.WEREWOLF:
                    role_info.teammates = {
                        wolf_id: self.state.wolf_teammates(wolf_id) for wolf_id in player_ids
                    }
                elif role == RoleType.WITCH:
                    role_info.kill_target = snapshot.round_ctx.kill_target
                info.role_infos[role] = role_info

            return info
