"""Communication channels for message routing between players."""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional, Sequence

from ..engine.phases import PhaseType
from ..engine.roles import RoleType

if TYPE_CHECKING:
    from ..engine.state import PlayerInfo


class Visibility(Enum):
    """Message visibility levels."""
    PUBLIC = "public"  # All living players see
    WEREWOLF = "werewolf"  # Only living werewolves see


@dataclass
class Message:
    """A chat message in a channel."""
    speaker: str
    content: str
    phase: str  # Phase label, e.g. night_1_wolf
    visibility: Visibility
    round: int = 0
    receivers: list[str] = field(default_factory=list)
    timestamp: float = field(default_factory=time.time)


@dataclass
class Channel:
    """Base class for communication channels."""

    name: str
    messages: list[Message] = field(default_factory=list)

    def add_message(
        self,
        speaker: str,
        content: str,
        phase: str,
        visibility: Visibility = Visibility.PUBLIC,
        round_number: int = 0,
        receivers: Optional[list[str]] = None,
    ) -> Message:
        """Add a message to the channel."""
        msg = Message(
            speaker=speaker,
            content=content,
            phase=phase,
            visibility=visibility,
            round=round_number,
            receivers=list(receivers or []),
        )
        self.messages.append(msg)
        return msg

    def get_messages(self, phase: Optional[str] = None) -> list[Message]:
        """Get messages, optionally filtered by phase."""
        if phase is None:
            return list(self.messages)
        return [m for m in self.messages if m.phase == phase]


@dataclass
class PublicChannel(Channel):
    """Channel for public day discussions - all living players can see."""

    def __post_init__(self):
        self.name = "public"

    def receivers(self, players: Sequence["PlayerInfo"]) -> list[str]:
        return [p.player_id for p in players if p.alive]


@dataclass
class PrivateChannel(Channel):
    """Channel for private communication - werewolf night chat."""

    allowed_players: list[str] = field(default_factory=list)

    def receivers(self, players: Sequence["PlayerInfo"]) -> list[str]:
        return [p.player_id for p in players if p.alive and p.player_id in self.allowed_players]


@dataclass
class Route:
    """Where a message goes: the channel that records it and who hears it."""
    channel: Channel
    visibility: Visibility
    receivers: list[str]


class ChannelManager:
    """Manages all communication channels for a game."""

    def __init__(self):
        self.public = PublicChannel(name="public")
        self.werewolf = PrivateChannel(name="werewolf", allowed_players=[])
        self._log: list[Message] = []  # Every channel, in send order

    def setup_werewolf_channel(self, werewolf_ids: list[str]) -> None:
        """Configure the werewolf private channel."""
        self.werewolf.allowed_players = list(werewolf_ids)

    def route(
        self,
        sender: "PlayerInfo",
        phase: PhaseType,
        players: Sequence["PlayerInfo"],
    ) -> Optional[Route]:
        """Work out who hears a message sent now.

        Args:
            sender: The speaking player.
            phase: Current game phase.
            players: All seated players.

        Returns:
            The route, or None if the sender may not chat in this phase.
        """
        if not sender.alive:
            return None

        if phase == PhaseType.NIGHT_WOLF:
            if sender.role != RoleType.WEREWOLF:
                return None
            return Route(self.werewolf, Visibility.WEREWOLF, self.werewolf.receivers(players))

        if phase == PhaseType.DAY:
            return Route(self.public, Visibility.PUBLIC, self.public.receivers(players))

        return None

    def post(
        self,
        route: Route,
        speaker: str,
        content: str,
        phase: str,
        round_number: int,
    ) -> Message:
        """Record a routed message in its channel."""
        msg = route.channel.add_message(
            speaker,
            content,
            phase,
            route.visibility,
            round_number=round_number,
            receivers=route.receivers,
        )
        self._log.append(msg)
        return msg

    def history(self, phase: Optional[str] = None) -> list[Message]:
        """All recorded messages in send order, optionally for one phase."""
        if phase is None:
            return list(self._log)
        return [m for m in self._log if m.phase == phase]
