"""Main entry point: a simulated Chameleon lobby played by bots."""

import asyncio
import logging
import os
import random
import sys
from typing import Optional

from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .config import GameConfig, load_config
from .engine.machine import Action, ClientView
from .engine.phases import Screen
from .engine.roles import RoleCard
from .models import Lobby
from .reporting.markdown_logger import MarkdownLogger
from .session import LobbyClient
from .store.memory import InMemoryLobbyStore


# Load environment variables
load_dotenv()

console = Console()

DEFAULT_BOTS = ["Ada", "Brook", "Cyril", "Dana"]
REVEAL_PAUSE = 1.0


def setup_logging() -> None:
    level = os.getenv("CHAMELEON_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def display_welcome():
    """Display welcome message."""
    console.print(Panel.fit(
        "[bold green]CHAMELEON[/bold green]\n"
        "[dim]Everyone knows the secret word - except one of you[/dim]",
        border_style="green",
    ))
    console.print()


def display_players(lobby: Lobby):
    """Display the lobby roster in join order."""
    table = Table(title=f"Lobby {lobby.code}", show_header=True, header_style="bold magenta")
    table.add_column("Name", style="cyan")
    table.add_column("Id", style="dim")
    table.add_column("Host", style="green")

    for pid in lobby.player_ids:
        table.add_row(lobby.player_name(pid), pid, "yes" if pid == lobby.host else "")

    console.print(table)
    console.print()


def bot_clue(card: Optional[RoleCard], topics: dict[str, list[str]], rng: random.Random) -> str:
    """A clue a bot gives: players hint at the word, the chameleon bluffs."""
    if card is None:
        return "Hard to put into words"
    word = card.secret_word
    if word is None:
        word = rng.choice(topics[card.topic])
    return f"{len(word)} letters, starts with {word[0]}"


async def play_bot(client: LobbyClient, rng: random.Random) -> ClientView:
    """Play one round for `client` and return its results view."""
    config = client.config

    view = await client.wait_for(lambda v: v.can(Action.VOTE_TOPIC))
    await client.vote_topic(rng.choice(view.topics))

    # A coalesced snapshot may skip the reveal screen entirely
    view = await client.wait_for(
        lambda v: v.screen in (Screen.ROLE_REVEAL, Screen.DISCUSSION, Screen.VOTING)
    )
    card = view.role
    if view.screen == Screen.ROLE_REVEAL:
        await asyncio.sleep(REVEAL_PAUSE)
        if client.view.can(Action.CONTINUE):
            await client.continue_from_reveal()

    view = await client.wait_for(lambda v: v.screen in (Screen.DISCUSSION, Screen.VOTING))
    if view.clue_turn is not None:
        view = await client.wait_for(
            lambda v: v.can(Action.SUBMIT_CLUE) or v.screen != Screen.DISCUSSION
        )
        if view.can(Action.SUBMIT_CLUE):
            await client.submit_clue(bot_clue(card, config.topics, rng))

    view = await client.wait_for(
        lambda v: v.can(Action.READY_TO_VOTE) or v.screen != Screen.DISCUSSION
    )
    if view.can(Action.READY_TO_VOTE):
        await client.ready_to_vote()

    view = await client.wait_for(lambda v: v.can(Action.VOTE_PLAYER) or v.screen == Screen.RESULTS)
    if view.can(Action.VOTE_PLAYER):
        await client.vote_player(rng.choice(view.vote_candidates))

    return await client.wait_for_screen(Screen.RESULTS)


async def run_round_with_progress(clients: list[LobbyClient], rng: random.Random) -> ClientView:
    """Run the round with progress display."""
    host = clients[0]
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("[cyan]Round in progress...", total=None)

        def show(view: ClientView) -> None:
            seconds = ", ".join(f"{name} {left}s" for name, left in sorted(view.countdowns.items()))
            progress.update(
                task,
                description=f"[yellow]{view.screen.label}[/yellow] [dim]{seconds}[/dim]",
            )

        host.on_view = show
        await host.start_game()
        views = await asyncio.gather(*(play_bot(client, rng) for client in clients))
        host.on_view = None

    return views[0]


def display_round(lobby: Lobby):
    """Display the round as it was played."""
    game = lobby.game

    console.print(f"Topic: [bold]{game.selected_topic}[/bold]  (ballot: {', '.join(game.topics)})")
    console.print()

    if game.clue_state is not None:
        table = Table(title="Clues", show_header=True, header_style="bold")
        table.add_column("Player", style="cyan")
        table.add_column("Clue")
        for pid in game.clue_state.turn_order:
            clue = game.clue_state.clues.get(pid)
            table.add_row(lobby.player_name(pid), clue.text if clue else "[dim]-[/dim]")
        console.print(table)
        console.print()

    table = Table(title="Votes", show_header=True, header_style="bold")
    table.add_column("Voter", style="cyan")
    table.add_column("Accused", style="red")
    for voter in lobby.player_ids:
        table.add_row(lobby.player_name(voter), lobby.player_name(game.player_votes.get(voter)))
    console.print(table)
    console.print()


def display_results(view: ClientView, journal: MarkdownLogger):
    """Display round results."""
    results = view.results
    tie = " after a tie" if results.tied else ""

    if results.chameleon_caught:
        console.print(Panel(
            f"[bold green]THE PLAYERS WIN![/bold green]\n"
            f"{results.chameleon_name} was the chameleon and got caught{tie}.",
            border_style="green",
        ))
    else:
        console.print(Panel(
            f"[bold red]THE CHAMELEON WINS![/bold red]\n"
            f"{results.most_voted_name} was accused{tie}; "
            f"the chameleon was {results.chameleon_name}.",
            border_style="red",
        ))
    console.print(f"Secret word: [bold]{results.secret_word}[/bold]")
    console.print()

    if journal.game_dir:
        console.print(f"[dim]Round log saved to: {journal.game_dir}[/dim]")


async def main():
    """Main entry point."""
    setup_logging()
    display_welcome()

    # Load configuration
    config_path = (
        sys.argv[1] if len(sys.argv) > 1
        else os.getenv("CHAMELEON_CONFIG", "config/game.yaml")
    )
    console.print(f"[dim]Loading config from: {config_path}[/dim]")
    try:
        config: GameConfig = load_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    count = min(max(config.min_players, len(DEFAULT_BOTS)), config.max_players)
    names = (DEFAULT_BOTS + [f"Bot {n}" for n in range(len(DEFAULT_BOTS) + 1, count + 1)])[:count]
    text_clues = os.getenv("CHAMELEON_TEXT_CLUES", "1") != "0"
    rng = random.Random(os.getenv("CHAMELEON_SEED"))

    store = InMemoryLobbyStore()
    journal = MarkdownLogger(base_dir="games")
    clients = [
        LobbyClient(store, config, rng=random.Random(rng.random()), journal=journal if i == 0 else None)
        for i in range(len(names))
    ]

    console.print(f"[cyan]Setting up {len(names)} players...[/cyan]")
    for client in clients:
        await client.connect()
    code = await clients[0].create_lobby(names[0], text_clues=text_clues)
    for client, name in zip(clients[1:], names[1:]):
        await client.join_lobby(code, name)

    host = clients[0]
    await host.wait_for(lambda v: v.can(Action.START_GAME) and len(v.players) == len(names))
    display_players(host.lobby)

    console.print("[bold]Round starting![/bold]")
    console.print()

    try:
        view = await run_round_with_progress(clients, rng)
        display_round(host.lobby)
        display_results(view, journal)
    except KeyboardInterrupt:
        console.print("\n[yellow]Round interrupted by user.[/yellow]")
        sys.exit(0)
    except Exception as e:
        console.print(f"\n[red]Error during round: {e}[/red]")
        raise
    finally:
        for client in clients:
            await client.close()


def run():
    """Entry point for the CLI."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
