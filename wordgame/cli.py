import logging
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from wordgame import analytics
from wordgame.config import config
from wordgame.errors import WordGameError
from wordgame.models import GOD_MODE_KEY, GameEvent, GameState, Phase
from wordgame.redis_store import RedisStore
from wordgame.services.session_service import SessionService
from wordgame.settings import GAME_SETTINGS, GameSettings

app = typer.Typer(help="Word-guessing game engine: word pool, leaderboard and a terminal playtest.")
console = Console()

_EVENT_MESSAGES = {
    GameEvent.CORRECT_GUESS: "[green]Correct![/green]",
    GameEvent.INCORRECT_GUESS: "[red]Wrong.[/red]",
    GameEvent.BONUS_LIFE_EARNED: "[magenta]Bonus life![/magenta]",
    GameEvent.GOD_MODE_READY: "[yellow]God Mode ready, type ! to activate[/yellow]",
    GameEvent.GOD_MODE_ENTERED: "[bold yellow]God Mode![/bold yellow]",
    GameEvent.GOD_MODE_EXITED: "[yellow]God Mode over[/yellow]",
    GameEvent.WORD_COMPLETED: "[bold green]Word complete![/bold green]",
    GameEvent.GO: "[bold]GO![/bold]",
    GameEvent.TIME_EXPIRED: "[red]Time's up![/red]",
}


@app.callback()
def main(log_level: str = typer.Option(config.LOG_LEVEL, help="Logging level")):
    logging.basicConfig(level=log_level.upper(), format=config.LOG_FORMAT)
    config.validate()
    analytics.init_posthog(config.POSTHOG_API_KEY, config.POSTHOG_HOST)


def _store() -> RedisStore:
    store = RedisStore()
    if not store.ping():
        console.print(f"[red]Error: cannot reach Redis at {config.REDIS_HOST}:{config.REDIS_PORT}[/red]")
        raise typer.Exit(code=1)
    return store


@app.command("load-words")
def load_words(path: str = typer.Argument(config.WORDS_FILE, help="File of word,hint lines")):
    """
    Replaces the word pool with the contents of PATH.
    """
    store = _store()
    try:
        count = store.load_words_file(path)
    except FileNotFoundError:
        console.print(f"[red]Error: {path} not found.[/red]")
        raise typer.Exit(code=1)
    console.print(f"[green]Loaded {count} words.[/green]")


@app.command("word-count")
def word_count():
    """
    Shows how many words are in the pool.
    """
    console.print(f"{_store().word_count()} words available")


@app.command()
def leaderboard(limit: int = typer.Option(config.LEADERBOARD_SIZE, help="Number of rows")):
    """
    Displays the high scores.
    """
    entries = _store().get_leaderboard(limit)
    table = Table(title="High Scores")
    table.add_column("Rank", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Score", justify="right", style="bold green")
    for i, entry in enumerate(entries):
        table.add_row(str(i + 1), entry.name, f"{entry.score:.0f}")
    console.print(table)


@app.command("wipe-leaderboard")
def wipe_leaderboard(yes: bool = typer.Option(False, "--yes", help="Skip confirmation")):
    """
    Deletes every high score.
    """
    if not yes and not typer.confirm("Wipe all high scores?"):
        raise typer.Exit()
    _store().wipe_leaderboard()
    console.print("[green]High scores wiped.[/green]")


def _print_state(state: Optional[GameState], settings: GameSettings = GAME_SETTINGS):
    if state is None:
        return
    god = " [bold yellow]GOD[/bold yellow]" if state.is_god_mode else ""
    console.print(
        f"Level {state.level}  Lives {state.lives}  Time {state.time_remaining}s  "
        f"Score {state.score:.0f}  x{state.current_multiplier(settings):.2f}{god}"
    )
    console.print(f"[bold]{' '.join(state.masked_word())}[/bold]  ({state.current_hint})")


@app.command()
def play(
    session_id: Optional[str] = typer.Option(None, help="Resume this game instead of starting one"),
    name: Optional[str] = typer.Option(None, help="Submit the final score under this name"),
):
    """
    Plays a game in the terminal. One line per key press, ! for God Mode, empty line to quit.
    """

    def on_event(event: GameEvent, state: Optional[GameState]):
        message = _EVENT_MESSAGES.get(event)
        if message:
            console.print(message)
        if event in (GameEvent.PLAYING, GameEvent.LEVEL_ADVANCED):
            _print_state(state, service.settings)

    service = SessionService(_store(), on_event=on_event)
    try:
        state = service.resume_session(session_id) if session_id else service.start_session()
    except WordGameError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)

    console.print(f"Game [cyan]{state.session_id}[/cyan], get ready...")
    try:
        while service.state is not None:
            line = input().strip()
            if not line:
                break
            service.press_key(GOD_MODE_KEY if line == "!" else line[0])
            if service.state is not None and service.state.phase == Phase.PLAYING:
                _print_state(service.state, service.settings)
        if service.state is not None:
            service.end_session()
    except WordGameError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)
    finally:
        service.shutdown()
        analytics.shutdown_posthog()

    summary = service.final_summary
    if summary is None:
        console.print(f"[red]Game could not be finalized: {service.last_error}[/red]")
        raise typer.Exit(code=1)

    console.print(
        f"[bold]Game over.[/bold] Score {summary.score:.0f}, "
        f"{summary.words_completed} words, {summary.time_taken}s"
    )
    if name:
        result = service.submit_score(name)
        if result.accepted:
            console.print(f"[green]Rank {result.rank} of {result.total_scores}[/green]")
        else:
            console.print(f"[yellow]Not recorded: {result.reason}[/yellow]")


if __name__ == "__main__":
    app()
