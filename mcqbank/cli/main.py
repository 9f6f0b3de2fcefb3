"""
mcq-bank CLI - practice multiple-choice questions from the terminal.

Usage:
    mcqbank subjects                  # Subjects with bank sizes
    mcqbank practice "Nutrition"      # Start a practice session
    mcqbank practice --resume         # Continue a saved session
    mcqbank collect --all             # Top up every low bank
    mcqbank stats                     # Lifetime accuracy
    mcqbank bookmarks                 # Review bookmarked questions
    mcqbank count                     # Questions per subject
    mcqbank explain questions.json    # Fill missing explanations
    mcqbank reset --questions         # Restore seed banks
"""

from __future__ import annotations

import asyncio
import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from config import Settings, get_settings
from mcqbank.core.kv_store import SqliteKeyValueStore
from mcqbank.integrations import default_sources
from mcqbank.quiz.explanations import explain_document_file
from mcqbank.quiz.models import QuestionRef
from mcqbank.quiz.question_bank import QuestionBankStore
from mcqbank.quiz.replenishment import CollectionStatus, ReplenishmentCoordinator
from mcqbank.quiz.seed_data import count_document_file
from mcqbank.study.progress_store import ProgressStore
from mcqbank.study.session_engine import SessionEngine, SessionSnapshot

from .practice import clear_session, load_session, run_practice

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="mcqbank",
    help="📚 mcq-bank - practice multiple-choice questions by subject",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()


@dataclass
class Runtime:
    """Stores and services shared by the commands."""

    settings: Settings
    store: SqliteKeyValueStore
    bank: QuestionBankStore
    progress: ProgressStore

    def coordinator(self, with_sources: bool = True) -> ReplenishmentCoordinator:
        sources = default_sources(self.settings) if with_sources else []
        return ReplenishmentCoordinator(self.bank, sources, settings=self.settings)

    def close(self) -> None:
        self.store.close()


def open_runtime(settings: Settings | None = None) -> Runtime:
    settings = settings or get_settings()
    store = SqliteKeyValueStore(settings.state_db_path)
    return Runtime(
        settings=settings,
        store=store,
        bank=QuestionBankStore(store, subjects=settings.subjects),
        progress=ProgressStore(store),
    )


def _resolve_subject(runtime: Runtime, name: str) -> str:
    """Match a subject case-insensitively, or exit."""
    for subject in runtime.bank.subjects():
        if subject.lower() == name.strip().lower():
            return subject
    console.print(f"[red]Unknown subject:[/] {name}")
    console.print("[dim]Run 'mcqbank subjects' for the list.[/dim]")
    raise typer.Exit(1)


# =============================================================================
# Study Commands
# =============================================================================


@app.command()
def subjects() -> None:
    """List subjects with bank size and collection status."""
    runtime = open_runtime()
    try:
        coordinator = runtime.coordinator(with_sources=False)
        table = Table(title="Subjects", show_header=True, header_style="bold cyan")
        table.add_column("Subject")
        table.add_column("Questions", justify="right")
        table.add_column("Accuracy", justify="right")
        table.add_column("Status")

        for subject, info in coordinator.collection_stats().items():
            status = "[yellow]needs more[/]" if info["needs_more"] else "[green]ok[/]"
            if info["last_failure"]:
                failed_at = datetime.fromtimestamp(info["last_failure"])
                status += f" [dim](last collection failed {failed_at:%Y-%m-%d %H:%M})[/dim]"
            table.add_row(
                subject,
                str(info["count"]),
                f"{runtime.progress.subject_accuracy(subject)}%",
                status,
            )
        console.print(table)
    finally:
        runtime.close()


@app.command()
def practice(
    subject: Annotated[str | None, typer.Argument(help="Subject to practice")] = None,
    resume: Annotated[
        bool, typer.Option("--resume", "-r", help="Continue the saved session")
    ] = False,
    seed: Annotated[
        int | None, typer.Option("--seed", help="Shuffle seed (reproducible order)")
    ] = None,
) -> None:
    """
    Start a practice session.

    Examples:
        mcqbank practice "Human Anatomy"
        mcqbank practice --resume
    """
    runtime = open_runtime()
    try:
        snapshot = load_session(runtime.store) if resume else None
        if resume and snapshot is None:
            console.print("[yellow]No saved session, starting fresh.[/]")

        if snapshot is None:
            if subject is None:
                console.print("[red]Pick a subject[/] (or use --resume)")
                raise typer.Exit(1)
            subject = _resolve_subject(runtime, subject)

        asyncio.run(_practice(runtime, subject, snapshot, seed))
    finally:
        runtime.close()


async def _practice(
    runtime: Runtime, subject: str | None, snapshot: SessionSnapshot | None, seed: int | None
) -> None:
    coordinator = runtime.coordinator()
    if snapshot is not None:
        engine = SessionEngine.from_snapshot(
            snapshot, runtime.bank, runtime.progress, coordinator, settings=runtime.settings
        )
    else:
        engine = SessionEngine(
            subject,
            runtime.bank,
            runtime.progress,
            coordinator,
            seed=seed,
            settings=runtime.settings,
        )

    try:
        await run_practice(console, engine, runtime.store)
    finally:
        await coordinator.drain()
        for source in coordinator.sources:
            await source.close()


@app.command()
def collect(
    subject: Annotated[str | None, typer.Argument(help="Subject to top up")] = None,
    all_subjects: Annotated[
        bool, typer.Option("--all", "-a", help="Top up every subject under the threshold")
    ] = False,
) -> None:
    """Fetch new questions from the configured sources."""
    if subject is None and not all_subjects:
        console.print("[red]Give a subject or --all[/]")
        raise typer.Exit(1)

    runtime = open_runtime()
    try:
        if subject is not None:
            subject = _resolve_subject(runtime, subject)
        results = asyncio.run(_collect(runtime, subject))
    finally:
        runtime.close()

    if not results:
        console.print("[green]All subjects are above the threshold.[/]")
        return

    table = Table(title="Collection", show_header=True, header_style="bold cyan")
    table.add_column("Subject")
    table.add_column("Added", justify="right")
    table.add_column("Result")
    for result in results:
        label = {
            CollectionStatus.INSERTED: "[green]inserted[/]",
            CollectionStatus.NO_NEW_QUESTIONS: "[yellow]no new questions[/]",
            CollectionStatus.SKIPPED: "[dim]skipped[/dim]",
        }[result.status]
        if result.used_fallback:
            label += " [dim](fallback)[/dim]"
        table.add_row(result.subject, str(result.inserted), label)
    console.print(table)


async def _collect(runtime: Runtime, subject: str | None) -> list:
    coordinator = runtime.coordinator()
    try:
        with console.status("Collecting questions..."):
            if subject is not None:
                return [await coordinator.request_replenishment(subject)]
            return list((await coordinator.bulk_replenish()).values())
    finally:
        for source in coordinator.sources:
            await source.close()


@app.command()
def stats() -> None:
    """Show lifetime accuracy per subject."""
    runtime = open_runtime()
    try:
        record = runtime.progress.record
        console.print(
            f"[bold]{record.total_correct}/{record.total_answered}[/bold] correct "
            f"({runtime.progress.accuracy_percent()}%) · {len(record.bookmarks)} bookmarks"
        )
        if not record.per_subject:
            return

        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Subject")
        table.add_column("Answered", justify="right")
        table.add_column("Correct", justify="right")
        table.add_column("Accuracy", justify="right")
        for subject, s in sorted(record.per_subject.items()):
            table.add_row(
                subject, str(s.total), str(s.correct), f"{runtime.progress.subject_accuracy(subject)}%"
            )
        console.print(table)
    finally:
        runtime.close()


@app.command()
def bookmarks(
    remove: Annotated[
        str | None, typer.Option("--remove", help="Remove a bookmark by reference")
    ] = None,
) -> None:
    """Review bookmarked questions."""
    runtime = open_runtime()
    try:
        if remove:
            try:
                runtime.progress.remove_bookmark(QuestionRef.parse(remove))
            except ValueError as e:
                console.print(f"[red]{e}[/]")
                raise typer.Exit(1)
            console.print(f"[dim]Removed {remove}[/dim]")

        resolved = list(runtime.progress.resolve_bookmarks(runtime.bank))
        if not resolved:
            console.print("[dim]No bookmarks yet.[/dim]")
            return

        for ref, question in resolved:
            console.print(f"[cyan]{ref.key}[/]  {question.text}")
            console.print(f"    [green]✓ {question.correct_option}[/]")
            if question.explanation:
                console.print(f"    [dim]{question.explanation}[/dim]")
    finally:
        runtime.close()


# =============================================================================
# Maintenance Commands
# =============================================================================


@app.command()
def count(
    document: Annotated[
        Path | None, typer.Argument(help="Seed document to count instead of the live bank")
    ] = None,
) -> None:
    """Count questions per subject."""
    if document is not None:
        try:
            counts = count_document_file(document)
        except (OSError, ValueError) as e:
            console.print(f"[red]Failed to read {document}:[/] {e}")
            raise typer.Exit(1)
    else:
        runtime = open_runtime()
        try:
            counts = runtime.bank.count_all()
        finally:
            runtime.close()

    for subject, n in counts.items():
        console.print(f"{subject}: {n}")
    console.print(f"[bold]Total questions across all subjects: {sum(counts.values())}[/bold]")


@app.command()
def explain(
    document: Annotated[Path, typer.Argument(help="Seed document to update")],
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write here instead of in place")
    ] = None,
) -> None:
    """Fill missing explanations in a seed document."""
    try:
        result = explain_document_file(document, output)
    except (OSError, ValueError) as e:
        console.print(f"[red]Failed to process {document}:[/] {e}")
        raise typer.Exit(1)

    console.print(f"Total questions processed: {result.total}")
    console.print(f"Explanations generated: {result.generated}")
    console.print(f"Coverage: {result.coverage_percent}%")


@app.command()
def reset(
    questions: Annotated[
        bool, typer.Option("--questions", help="Restore seed question banks")
    ] = False,
    progress: Annotated[
        bool, typer.Option("--progress", help="Clear statistics and bookmarks")
    ] = False,
    subject: Annotated[
        str | None, typer.Option("--subject", "-s", help="Only reset this subject's bank")
    ] = None,
) -> None:
    """Reset question banks and/or progress."""
    if not questions and not progress:
        console.print("[yellow]Nothing to reset: pass --questions and/or --progress[/]")
        raise typer.Exit(1)

    runtime = open_runtime()
    try:
        if questions:
            target = _resolve_subject(runtime, subject) if subject else None
            runtime.bank.reset_to_default(target)
            clear_session(runtime.store)
            console.print(f"[green]Question bank reset{f' for {target}' if target else ''}.[/]")
        if progress:
            runtime.progress.reset()
            console.print("[green]Progress cleared.[/]")
    finally:
        runtime.close()


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """CLI entry point."""
    settings = get_settings()
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="<level>{message}</level>",
    )
    if settings.log_file:
        logger.add(settings.log_file, level="DEBUG", rotation="1 MB")

    app()


if __name__ == "__main__":
    main()
