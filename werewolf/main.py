"""Console narrator for the Werewolf engine."""

import os
import random
import shlex
import sys
from typing import Optional

from dotenv import load_dotenv
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .communication.channels import Message, Visibility
from .communication.markdown_logger import MarkdownLogger
from .engine.actions import SubmittedAction, parse_action
from .engine.config import DEFAULT_CONFIG_PATH, GameConfig, load_config
from .engine.effects import GameEvent
from .engine.errors import GameError
from .engine.game import Game, PhaseInfo
from .engine.roles import Camp, RoleType, parse_role
from .utils.logging import setup_logging

console = Console()

HELP_TEXT = (
    "[bold]Commands[/bold]\n"
    "  <player> <action> \\[target]   submit an action (e.g. alice kill bob)\n"
    "  say <player> <text>          send a chat message\n"
    "  end                          resolve the current phase\n"
    "  status                       show the current phase and players\n"
    "  help                         show this help\n"
    "  quit                         leave the game"
)

EVENT_TEXT = {
    "kill": "[red]{target} was killed by the werewolves.[/red]",
    "poison": "[magenta]{target} was poisoned.[/magenta]",
    "eliminate": "[yellow]The village eliminated {target}.[/yellow]",
    "shoot": "[red]The Hunter {source} takes {target} with them![/red]",
    "protect": "[dim]{source} guarded {target}.[/dim]",
    "save": "[green]{source} saved {target}.[/green]",
    "check": "[cyan]{source} checked {target}: {camp}.[/cyan]",
    "skip": "[dim]{source} holds their fire.[/dim]",
    "no_elimination": "[yellow]No one is eliminated today.[/yellow]",
    "hunter_triggered": "[bold red]{target} was the Hunter![/bold red]",
}


def build_roster(config_data: dict, rng: Optional[random.Random] = None) -> list[tuple[str, RoleType]]:
    """Seat players from a config document.

    Players that name a role keep it. Otherwise roles are drawn from the
    shuffled `role_distribution` pool.

    Raises:
        ValueError: If the pool doesn't match the player count.
    """
    players = config_data.get("players") or []
    if not players:
        raise ValueError("Config has no players")

    names = [p["name"] for p in players]
    if len(set(names)) != len(names):
        raise ValueError("Player names must be unique")

    if all(p.get("role") for p in players):
        return [(p["name"], parse_role(p["role"])) for p in players]

    role_pool: list[RoleType] = []
    for role_name, count in (config_data.get("role_distribution") or {}).items():
        role_pool.extend([parse_role(role_name)] * int(count))

    if len(role_pool) != len(players):
        raise ValueError(
            f"Role count ({len(role_pool)}) doesn't match "
            f"player count ({len(players)})"
        )

    (rng or random.Random()).shuffle(role_pool)
    return list(zip(names, role_pool))


def create_game(config_data: dict, rng: Optional[random.Random] = None) -> Game:
    """Build a game with its rules and roster from a config document."""
    game = Game(GameConfig.from_dict(config_data.get("rules")))
    for name, role in build_roster(config_data, rng):
        game.add_player(name, role)
    return game


def display_welcome():
    """Display welcome message."""
    console.print(Panel.fit(
        "[bold red]WEREWOLF[/bold red]\n"
        "[dim]You are the narrator[/dim]",
        border_style="red",
    ))
    console.print()


def display_players(game: Game):
    """Display the roster with alive state."""
    table = Table(title="Players", show_header=True, header_style="bold magenta")
    table.add_column("Name", style="cyan")
    table.add_column("Role", style="red")
    table.add_column("Status", style="green")

    for player in game.players():
        status = "[green]Alive[/green]" if player.alive else "[red]Dead[/red]"
        table.add_row(player.player_id, f"[dim]{player.role.value.capitalize()}[/dim]", status)

    console.print(table)
    console.print()


def display_phase(info: PhaseInfo):
    """Show who acts in the current phase."""
    lines = [f"[bold]{info.name.replace('_', ' ').title()}[/bold]  [dim]({info.timeout:.0f}s)[/dim]"]
    if not info.active_roles:
        lines.append("[dim]No player acts in this phase. Type 'end' to continue.[/dim]")

    for role, role_info in info.role_infos.items():
        who = ", ".join(role_info.player_ids) or "nobody"
        actions = ", ".join(a.value for a in role_info.allowed_actions)
        label = "Everyone" if role == RoleType.ANY else role.value.capitalize()
        lines.append(f"{label}: {who} -> {actions}")
        for wolf_id, mates in role_info.teammates.items():
            if mates:
                lines.append(f"  [red]{wolf_id} hunts with {', '.join(mates)}[/red]")
        if role == RoleType.WITCH:
            target = role_info.kill_target or "nobody"
            lines.append(f"  [magenta]Dying tonight: {target}[/magenta]")

    border = "blue" if info.phase.is_night else "yellow"
    console.print(Panel("\n".join(lines), border_style=border))


def display_event(event: GameEvent):
    """Print one game event."""
    if event.kind == "game_ended":
        return
    template = EVENT_TEXT.get(event.kind)
    if template is None:
        return
    if event.canceled and event.kind != "no_elimination":
        console.print(f"[dim]{event.source_id} tried to {event.kind} {event.target_id}: {event.reason}[/dim]")
        return
    console.print(template.format(
        source=event.source_id,
        target=event.target_id,
        camp=event.data.get("camp", "?").upper(),
    ))


def display_message(message: Message):
    """Print one chat message."""
    if message.visibility == Visibility.WEREWOLF:
        console.print(f"[red](wolves) {escape(message.speaker)}:[/red] {escape(message.content)}")
    else:
        console.print(f"[bold]{escape(message.speaker)}:[/bold] {escape(message.content)}")


def display_results(game: Game):
    """Display game results."""
    console.print()

    if game.winner == Camp.GOOD:
        console.print(Panel(
            "[bold green]THE VILLAGE WINS![/bold green]\n"
            "All werewolves have been eliminated.",
            border_style="green",
        ))
    elif game.winner == Camp.EVIL:
        console.print(Panel(
            "[bold red]THE WEREWOLVES WIN![/bold red]\n"
            "The werewolves have taken over the village.",
            border_style="red",
        ))

    console.print()

    table = Table(title="Final Standings", show_header=True, header_style="bold")
    table.add_column("Player", style="cyan")
    table.add_column("Role", style="magenta")
    table.add_column("Camp", style="blue")
    table.add_column("Status", style="green")

    for player in game.players():
        status = "[green]Survived[/green]" if player.alive else "[red]Dead[/red]"
        camp_color = "red" if player.camp == Camp.EVIL else "green"
        table.add_row(
            player.player_id,
            player.role.value.capitalize(),
            f"[{camp_color}]{player.camp.value}[/{camp_color}]",
            status,
        )

    console.print(table)
    console.print()


def handle_command(game: Game, line: str) -> bool:
    """Run one narrator command.

    Returns:
        False once the narrator wants to quit.
    """
    try:
        parts = shlex.split(line)
    except ValueError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        return True
    if not parts:
        return True

    command = parts[0].lower()
    try:
        if command == "quit":
            return False
        elif command == "help":
            console.print(HELP_TEXT)
        elif command == "status":
            display_phase(game.phase_info())
            display_players(game)
        elif command == "end":
            game.end_sub_step()
            if not game.is_game_over:
                display_phase(game.phase_info())
        elif command == "say":
            if len(parts) < 3:
                console.print("[red]Usage: say <player> <text>[/red]")
            else:
                game.send_message(parts[1], " ".join(parts[2:]))
        else:
            if len(parts) < 2:
                console.print("[red]Usage: <player> <action> \\[target][/red]")
                return True
            action = SubmittedAction(
                player_id=parts[0],
                kind=parse_action(parts[1]),
                target_id=parts[2] if len(parts) > 2 else "",
                content=" ".join(parts[3:]),
            )
            game.submit_action(action)
            console.print(f"[dim]{action.player_id}: {action.kind.value} accepted[/dim]")
    except GameError as e:
        console.print(f"[red]Rejected: {e.message}[/red]")
    except ValueError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
    return True


def main(argv: Optional[list[str]] = None):
    """Main entry point."""
    load_dotenv()
    argv = sys.argv[1:] if argv is None else argv

    setup_logging(
        log_level=os.getenv("WEREWOLF_LOG_LEVEL", "WARNING"),
        log_dir=os.getenv("WEREWOLF_LOG_DIR") or None,
    )

    display_welcome()

    config_path = argv[0] if argv else os.getenv("WEREWOLF_CONFIG", DEFAULT_CONFIG_PATH)
    console.print(f"[dim]Loading config from: {config_path}[/dim]")
    try:
        config_data = load_config(config_path)
        seed = config_data.get("seed")
        game = create_game(config_data, random.Random(seed))
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(1)

    markdown_logger = MarkdownLogger(base_dir=config_data.get("log_dir", "games"))
    markdown_logger.start_game()
    markdown_logger.log_setup(game.players())
    markdown_logger.attach(game)
    game.register_event_handler(display_event)
    game.register_message_handler(display_message)

    display_players(game)
    console.print(HELP_TEXT)
    console.print()

    game.start()
    display_phase(game.phase_info())

    try:
        while not game.is_game_over:
            line = console.input("[bold cyan]narrator> [/bold cyan]")
            if not handle_command(game, line):
                break
    except (KeyboardInterrupt, EOFError):
        console.print("\n[yellow]Game interrupted by user.[/yellow]")
        sys.exit(0)

    if game.is_game_over:
        display_results(game)
        logger.info(f"Game finished after {game.round_number} rounds")
    console.print(f"[dim]Game log saved to: {markdown_logger.game_dir}[/dim]")


def run():
    """Entry point for the CLI."""
    main()


if __name__ == "__main__":
    run()
