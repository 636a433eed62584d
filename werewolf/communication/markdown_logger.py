"""Markdown logger for game conversations and events."""

import json
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from ..engine.effects import GameEvent
from ..engine.roles import Camp
from .channels import Message, Visibility

if TYPE_CHECKING:
    from ..engine.game import Game
    from ..engine.state import PlayerInfo

DEATH_CAUSES = {
    "kill": "werewolf attack",
    "poison": "mysterious poisoning",
    "eliminate": "village vote",
    "shoot": "Hunter's revenge",
}

NIGHT_ACTIONS = ("protect", "save", "poison", "check", "shoot", "skip")


def _title(phase: str) -> str:
    return phase.replace("_", " ").title()


class MarkdownLogger:
    """Writes game events and conversations to markdown files.

    Attach it to a game to receive events and chat as an observer.
    """

    def __init__(self, base_dir: str = "games"):
        """Initialize the logger.

        Args:
            base_dir: Base directory for game logs.
        """
        self.base_dir = Path(base_dir)
        self.game_dir: Optional[Path] = None
        self.game_id: Optional[str] = None
        self._game: Optional["Game"] = None
        self._current_phase: Optional[str] = None

    @property
    def game_file(self) -> Path:
        if self.game_dir is None:
            raise RuntimeError("start_game() must be called before logging")
        return self.game_dir / "game_state.md"

    def start_game(self, game_id: Optional[str] = None) -> Path:
        """Start logging a new game.

        Args:
            game_id: Optional game identifier. If not provided, uses timestamp.

        Returns:
            Path to the game directory.
        """
        if game_id is None:
            timestamp = datetime.now().strftime("%Y-%m-%d_%H%M%S")
            game_id = f"game_{timestamp}"

        self.game_id = game_id
        self.game_dir = self.base_dir / game_id
        self.game_dir.mkdir(parents=True, exist_ok=True)
        self._current_phase = None

        self._write_game_header()
        return self.game_dir

    def attach(self, game: "Game") -> None:
        """Register as an event and message observer of a game."""
        self._game = game
        game.register_event_handler(self.on_event)
        game.register_message_handler(self.on_message)

    def _write_game_header(self) -> None:
        """Write the initial game state file header."""
        with open(self.game_file, "w") as f:
            f.write(f"# Werewolf Game - {self.game_id}\n\n")
            f.write(f"Started: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n\n")
            f.write("---\n\n")

    def log_setup(self, players: list["PlayerInfo"]) -> None:
        """Log the seated roster.

        Args:
            players: All players with their hidden roles.
        """
        with open(self.game_file, "a") as f:
            f.write("## Players\n\n")
            f.write("| Player | Role (Hidden) | Camp |\n")
            f.write("|--------|---------------|------|\n")
            for p in players:
                f.write(f"| {p.player_id} | {p.role.value.capitalize()} | {p.camp.value} |\n")
            f.write("\n---\n\n")

    def log_phase_start(self, phase: str) -> None:
        """Log the start of a game phase.

        Args:
            phase: Phase name (e.g., "night_1_guard", "day_1_discussion").
        """
        self._current_phase = phase
        with open(self.game_file, "a") as f:
            f.write(f"## {_title(phase)}\n\n")

    def _ensure_phase(self, phase: str) -> None:
        if phase and phase != self._current_phase:
            self.log_phase_start(phase)

    def on_event(self, event: GameEvent) -> None:
        """Record one game event."""
        if event.kind == "game_ended":
            winner = Camp(event.data["winner"])
            players = self._game.players() if self._game is not None else []
            self.log_game_end(winner, players)
            return

        self._ensure_phase(event.phase)

        if event.kind in DEATH_CAUSES and not event.canceled:
            self.log_death(
                event.target_id,
                DEATH_CAUSES[event.kind],
                event.phase,
                role_revealed=self._role_of(event.target_id),
            )
        if event.kind == "eliminate":
            self.log_vote(event.phase, json.loads(event.data.get("tally", "{}")), event.target_id)
        elif event.kind == "no_elimination":
            self.log_vote(event.phase, json.loads(event.data.get("tally", "{}")), None)
        elif event.kind == "hunter_triggered":
            with open(self.game_file, "a") as f:
                f.write(f"*{event.target_id} was the Hunter and may take someone with them.*\n\n")

        if event.kind in NIGHT_ACTIONS and event.source_id:
            result = None
            if event.kind == "check":
                result = "GOOD" if event.data.get("is_good") == "true" else "EVIL"
            elif event.canceled:
                result = f"canceled: {event.reason}"
            self.log_night_action(
                event.phase,
                self._role_of(event.source_id) or "Unknown",
                event.source_id,
                event.kind,
                event.target_id or None,
                result,
            )

    def on_message(self, message: Message) -> None:
        """Record one chat message in the file of its channel."""
        if message.visibility == Visibility.WEREWOLF:
            self.log_werewolf_message(message.phase, message)
        else:
            self.log_discussion_message(message.phase, message)

    def _role_of(self, player_id: str) -> Optional[str]:
        if self._game is None or not player_id:
            return None
        info = self._game.player_info(player_id)
        if info is None:
            return None
        return info.role.value.capitalize()

    def log_discussion_message(self, phase: str, message: Message) -> None:
        """Append a public message to the discussion file of its phase."""
        filename = f"{phase}.md"
        filepath = self.game_dir / filename

        is_new = not filepath.exists()
        with open(filepath, "a") as f:
            if is_new:
                f.write(f"# {_title(phase)}\n\n")
            f.write(f"**{message.speaker}**:\n")
            f.write(f"> {message.content}\n\n")

        if is_new:
            self._ensure_phase(phase)
            with open(self.game_file, "a") as f:
                f.write(f"*See [{filename}](./{filename}) for full discussion*\n\n")

    def log_werewolf_message(self, phase: str, message: Message) -> None:
        """Append a message to the secret werewolf chat of a night."""
        filepath = self.game_dir / f"{phase}_werewolves.md"

        is_new = not filepath.exists()
        with open(filepath, "a") as f:
            if is_new:
                f.write(f"# Werewolf Night Chat - {_title(phase)}\n\n")
                f.write("*This conversation is secret - only werewolves can see it*\n\n")
                f.write("---\n\n")
            f.write(f"**{message.speaker}**:\n")
            f.write(f"> {message.content}\n\n")

    def log_vote(
        self,
        phase: str,
        tally: dict[str, int],
        eliminated: Optional[str],
    ) -> None:
        """Log voting results.

        Args:
            phase: Phase name.
            tally: Votes received per player.
            eliminated: Eliminated player, or None when no one was.
        """
        votes_dir = self.game_dir / "votes"
        votes_dir.mkdir(exist_ok=True)

        with open(votes_dir / f"{phase}.md", "w") as f:
            f.write(f"# Voting - {_title(phase)}\n\n")

            f.write("## Vote Totals\n\n")
            if tally:
                for target, count in sorted(tally.items(), key=lambda x: (-x[1], x[0])):
                    f.write(f"- **{target}**: {count} votes\n")
            else:
                f.write("*No votes were cast.*\n")

            f.write("\n## Result\n\n")
            if eliminated:
                f.write(f"**{eliminated}** was eliminated by the village.\n")
            else:
                f.write("*No elimination - vote was tied.*\n")

        with open(self.game_file, "a") as f:
            f.write("### Vote Result\n\n")
            if eliminated:
                f.write(f"**{eliminated}** was eliminated.\n\n")
            else:
                f.write("*Vote tied - no elimination*\n\n")

    def log_death(
        self,
        player_id: str,
        cause: str,
        phase: str,
        role_revealed: Optional[str] = None,
    ) -> None:
        """Log a player death.

        Args:
            player_id: Who died.
            cause: How they died.
            phase: When they died.
            role_revealed: Their role (revealed on death).
        """
        with open(self.game_file, "a") as f:
            f.write("### Death\n\n")
            f.write(f"**{player_id}** died ({cause}).\n")
            if role_revealed:
                f.write(f"*They were a {role_revealed}.*\n")
            f.write("\n")

    def log_night_action(
        self,
        phase: str,
        role: str,
        player: str,
        action: str,
        target: Optional[str] = None,
        result: Optional[str] = None,
    ) -> None:
        """Log a night action (for game review - not visible to players).

        Args:
            phase: Phase the action resolved in.
            role: Role that took action.
            player: Player who took action.
            action: What action.
            target: Target of action.
            result: Result of action.
        """
        filepath = self.game_dir / f"{phase}_actions.md"

        mode = "a" if filepath.exists() else "w"
        with open(filepath, mode) as f:
            if mode == "w":
                f.write(f"# Night Actions - {_title(phase)}\n\n")
                f.write("*This file records all night actions for game review*\n\n")
                f.write("---\n\n")

            f.write(f"**{player}** ({role}): {action}")
            if target:
                f.write(f" -> {target}")
            if result:
                f.write(f" [{result}]")
            f.write("\n\n")

    def log_game_end(self, winner: Camp, players: list["PlayerInfo"]) -> None:
        """Log the game ending.

        Args:
            winner: Winning camp.
            players: All players with roles revealed.
        """
        survivors = [p for p in players if p.alive]
        with open(self.game_file, "a") as f:
            f.write("---\n\n")
            f.write("# GAME OVER\n\n")
            f.write(f"## Winner: {winner.value.upper()} CAMP\n\n")

            f.write("## Survivors\n\n")
            if survivors:
                for p in survivors:
                    f.write(f"- {p.player_id} ({p.role.value.capitalize()})\n")
            else:
                f.write("*No survivors*\n")

            f.write("\n## All Players\n\n")
            f.write("| Player | Role | Camp | Survived |\n")
            f.write("|--------|------|------|----------|\n")
            for p in players:
                survived = "Yes" if p.alive else "No"
                f.write(f"| {p.player_id} | {p.role.value.capitalize()} | {p.camp.value} | {survived} |\n")

            f.write(f"\n\nEnded: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")
