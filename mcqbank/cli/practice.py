"""
Interactive practice loop for the terminal.

Renders the session engine with rich and feeds it keyboard input. Prompts
run in a worker thread so background top-ups keep going on the event loop
while the learner thinks. Elapsed time is fed to the engine's question
timer when input arrives.
"""

from __future__ import annotations

import asyncio
import json
import time

from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from mcqbank.core.kv_store import KeyValueStore, guarded
from mcqbank.study.session_engine import (
    SessionEngine,
    SessionError,
    SessionSnapshot,
    SessionStatus,
)

SESSION_KEY = "mcqbank.session"

HELP_TEXT = "[dim]1-9 answer · n next · p previous · b bookmark · q quit[/dim]"


def save_session(store: KeyValueStore, engine: SessionEngine) -> None:
    guarded(store).set(SESSION_KEY, json.dumps(engine.snapshot().to_dict()))


def load_session(store: KeyValueStore) -> SessionSnapshot | None:
    """Saved session, or None; an unreadable one is discarded."""
    store = guarded(store)
    raw = store.get(SESSION_KEY)
    if raw is None:
        return None
    try:
        return SessionSnapshot.from_dict(json.loads(raw))
    except (ValueError, TypeError, KeyError) as e:
        logger.warning(f"Discarding unreadable saved session: {e}")
        store.remove(SESSION_KEY)
        return None


def clear_session(store: KeyValueStore) -> None:
    guarded(store).remove(SESSION_KEY)


def render_question(console: Console, engine: SessionEngine) -> bool:
    """Show the current slot; False when there is nothing to show."""
    view = engine.current_question()
    if view is None:
        console.print(f"[yellow]No questions available for {engine.subject}.[/]")
        return False

    if engine.bank_update_notice is not None:
        notice = engine.bank_update_notice
        console.print(f"[green]+{notice.inserted_count} new questions added to {notice.subject}[/]")
        engine.bank_update_notice = None

    lines = [f"[bold]{view.question.text}[/bold]", ""]
    for i, option in enumerate(view.question.options):
        marker = "  "
        style = ""
        if view.is_answered:
            if i == view.question.correct_index:
                marker, style = "✓ ", "green"
            elif i == view.selected_index:
                marker, style = "✗ ", "red"
        text = f"{marker}{i + 1}. {option}"
        lines.append(f"[{style}]{text}[/{style}]" if style else text)

    if view.is_answered and view.question.explanation:
        lines += ["", f"[dim]{view.question.explanation}[/dim]"]

    bookmark = " 🔖" if view.is_bookmarked else ""
    timer = f"⏱ {engine.timer.remaining}s" if engine.timer.active else ""
    console.print(
        Panel(
            "\n".join(lines),
            title=f"{engine.subject} · {view.position + 1}/{view.round_size}{bookmark}",
            subtitle=f"Score {engine.score} {timer}".rstrip(),
            border_style="cyan",
        )
    )
    return True


def render_results(console: Console, engine: SessionEngine) -> None:
    summary = engine.summary()
    console.print(
        Panel(
            f"[bold]{summary.score}/{summary.total}[/bold] correct "
            f"({summary.percent}%), {summary.answered} answered",
            title="Round complete",
            border_style="green" if summary.percent >= 70 else "yellow",
        )
    )

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Question")
    table.add_column("Your answer")
    table.add_column("Correct")
    for item in engine.review():
        if item.answer is None:
            picked = "[dim]-[/dim]"
        elif item.answer.is_correct:
            picked = f"[green]{item.question.options[item.answer.picked_index]}[/green]"
        else:
            picked = f"[red]{item.question.options[item.answer.picked_index]}[/red]"
        table.add_row(str(item.position + 1), item.question.text, picked, item.question.correct_option)
    console.print(table)


async def _ask(prompt: str) -> str:
    return await asyncio.to_thread(Prompt.ask, prompt, default="")


async def _confirm(prompt: str, default: bool = True) -> bool:
    return await asyncio.to_thread(Confirm.ask, prompt, default=default)


async def run_practice(
    console: Console, engine: SessionEngine, session_store: KeyValueStore
) -> None:
    """Drive ``engine`` until the learner quits."""
    console.print(HELP_TEXT)

    while True:
        if engine.status == SessionStatus.FINISHED:
            render_results(console, engine)
            clear_session(session_store)
            if not await _confirm("Start the next round?"):
                break
            with console.status("Looking for new questions..."):
                await engine.start_next_round()
            continue

        if not render_question(console, engine):
            break

        started = time.monotonic()
        choice = (await _ask("Your choice")).strip().lower()
        position = engine.round.position
        engine.tick(int(time.monotonic() - started))
        if engine.round.position != position or engine.status == SessionStatus.FINISHED:
            console.print("[yellow]⏰ Time's up![/]")
            continue

        try:
            if choice == "q":
                save_session(session_store, engine)
                console.print("[dim]Session saved. Resume with --resume.[/dim]")
                break
            elif choice in ("n", ""):
                engine.advance()
            elif choice == "p":
                if not engine.retreat():
                    console.print("[dim]Already at the first question.[/dim]")
            elif choice == "b":
                state = engine.toggle_bookmark()
                console.print("[cyan]Bookmarked[/]" if state else "[dim]Bookmark removed[/dim]")
            elif choice.isdigit():
                record = engine.submit_answer(int(choice) - 1)
                console.print("[green]Correct![/]" if record.is_correct else "[red]Incorrect[/]")
            else:
                console.print(HELP_TEXT)
        except SessionError as e:
            console.print(f"[yellow]{e}[/]")

    engine.close()
