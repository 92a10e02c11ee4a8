"""
Practice Engine CLI.

Operator commands over the wrong-item store and a JSON question file:

- practice-engine plan      - Show a difficulty distribution
- practice-engine select    - Draw a practice set from a question file
- practice-engine record    - Record a missed question as a wrong item
- practice-engine due       - List due reviews, most urgent first
- practice-engine review    - Record a retry outcome
- practice-engine archive   - Archive a wrong item
- practice-engine stats     - Wrong-book statistics
"""
from __future__ import annotations

import asyncio
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from practice_engine.adaptive.difficulty_planner import DifficultyPlanner, DistributionPreset
from practice_engine.config import get_settings
from practice_engine.core.exceptions import PracticeEngineError
from practice_engine.core.models import (
    Difficulty,
    GradingOutcome,
    PracticeMode,
    SelectionStrategy,
    WrongItem,
    WrongItemStatus,
)
from practice_engine.delivery.question_pool import InMemoryQuestionPool
from practice_engine.delivery.state_store import SqlWrongItemStore
from practice_engine.engine import ReviewEngine
from practice_engine.logging_setup import configure_logging


# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="practice-engine",
    help="Adaptive practice generation and wrong-item review",
    no_args_is_help=True,
)
console = Console()


class PlanKind(str, Enum):
    FIXED = "fixed"
    BALANCED = "balanced"
    PRESET = "preset"


STATUS_STYLES = {
    WrongItemStatus.PENDING: "yellow",
    WrongItemStatus.REVIEWING: "cyan",
    WrongItemStatus.MASTERED: "green",
    WrongItemStatus.ARCHIVED: "dim",
}

DATE_FORMATS = ["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S"]


def style_status(status: WrongItemStatus) -> str:
    color = STATUS_STYLES[status]
    return f"[{color}]{status.value}[/{color}]"


def _build_engine(pool: InMemoryQuestionPool | None = None) -> ReviewEngine:
    settings = get_settings()
    return ReviewEngine(pool if pool is not None else InMemoryQuestionPool(), SqlWrongItemStore(settings.database_url), settings=settings)


def _fail(error: PracticeEngineError) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {error}")
    raise typer.Exit(1)


def _show_item(engine: ReviewEngine, item: WrongItem, now: datetime) -> None:
    schedule = item.review_schedule
    error_line = f"Error type: {item.error_type.display_name}"
    if item.error_tags:
        error_line += f" [dim]({', '.join(item.error_tags)})[/dim]"
    console.print(
        Panel(
            f"Status: {style_status(item.status)}\n"
            f"Retries: {item.retry_count} ({engine.ledger.review_progress(item)}% to mastery)\n"
            f"Next review: {schedule.next_review_date.date()} "
            f"({engine.ledger.review_progress_text(item, now)})\n"
            f"{error_line}\n"
            f"Times missed: {item.wrong_count}",
            title=f"Wrong item {item.id}",
            border_style="cyan",
        )
    )


# =============================================================================
# Commands
# =============================================================================


@app.command()
def plan(
    count: int = typer.Option(10, "--count", "-n", help="Target number of questions"),
    kind: PlanKind = typer.Option(PlanKind.BALANCED, "--kind", "-k", help="Distribution kind"),
    difficulty: Difficulty = typer.Option(Difficulty.MEDIUM, "--difficulty", "-d", help="Main difficulty (fixed)"),
    level: int = typer.Option(1, "--level", "-l", help="Learner level (balanced)"),
    preset: DistributionPreset = typer.Option(DistributionPreset.BALANCED, "--preset", "-p", help="Preset (preset)"),
) -> None:
    """Show the difficulty distribution for a practice set."""
    planner = DifficultyPlanner()
    try:
        if kind == PlanKind.FIXED:
            distribution = planner.compute_fixed_distribution(count, difficulty)
        elif kind == PlanKind.PRESET:
            distribution = planner.compute_preset_distribution(count, preset)
        else:
            distribution = planner.compute_balanced_distribution(count, level)
    except PracticeEngineError as e:
        _fail(e)

    table = Table(title=f"{kind.value.title()} distribution ({count} questions)")
    table.add_column("Difficulty")
    table.add_column("Count", justify="right")
    for name, value in distribution.as_dict().items():
        table.add_row(name, str(value))
    console.print(table)


@app.command()
def select(
    questions: Path = typer.Option(..., "--questions", "-q", help="JSON file with questions"),
    knowledge_points: Optional[list[str]] = typer.Option(None, "--kp", help="Knowledge point id (repeatable)"),
    count: int = typer.Option(10, "--count", "-n", help="Target number of questions"),
    mode: PracticeMode = typer.Option(PracticeMode.STANDARD, "--mode", "-m", help="Practice mode"),
    difficulty: Optional[Difficulty] = typer.Option(None, "--difficulty", "-d", help="Fixed difficulty"),
    level: int = typer.Option(1, "--level", "-l", help="Learner level"),
) -> None:
    """Draw a practice set."""
    try:
        engine = _build_engine(InMemoryQuestionPool.from_json_file(questions))
        strategy = SelectionStrategy(
            knowledge_point_ids=knowledge_points or [],
            target_count=count,
            mode=mode,
            fixed_difficulty=difficulty,
            user_level=level,
        )
        result = asyncio.run(engine.select_questions(strategy))
    except PracticeEngineError as e:
        _fail(e)

    table = Table(title=f"Practice set ({len(result.questions)}/{count})")
    table.add_column("#", justify="right")
    table.add_column("Question")
    table.add_column("Knowledge point")
    table.add_column("Difficulty")
    for i, question in enumerate(result.questions, 1):
        table.add_row(str(i), question.id, question.knowledge_point_id, question.difficulty.value)
    console.print(table)

    dist = result.distribution
    console.print(
        f"Easy {dist.easy} / Medium {dist.medium} / Hard {dist.hard}, "
        f"about {result.estimated_time_seconds // 60} min"
    )


@app.command()
def record(
    question_id: str = typer.Argument(..., help="Missed question id"),
    questions: Path = typer.Option(..., "--questions", "-q", help="JSON file with questions"),
    mistakes: Optional[list[str]] = typer.Option(None, "--mistake", help="Grader diagnosis (repeatable)"),
    suggestions: Optional[list[str]] = typer.Option(None, "--suggestion", help="Grader suggestion (repeatable)"),
) -> None:
    """Record a missed question in the wrong book."""
    now = datetime.now()
    try:
        pool = InMemoryQuestionPool.from_json_file(questions)
        question = pool.get(question_id)
        engine = _build_engine(pool)
        item = engine.record_submission(
            question,
            GradingOutcome(is_correct=False, mistakes=tuple(mistakes or ()), suggestions=tuple(suggestions or ())),
            now,
        )
    except PracticeEngineError as e:
        _fail(e)

    _show_item(engine, item, now)


@app.command()
def due(
    as_of: Optional[datetime] = typer.Option(None, "--as-of", formats=DATE_FORMATS, help="Reference day"),
    limit: int = typer.Option(20, "--limit", "-l", help="Maximum rows"),
) -> None:
    """List wrong items due for review, most urgent first."""
    now = as_of or datetime.now()
    engine = _build_engine()
    items = engine.get_due_reviews(now)

    if not items:
        console.print("[green]Nothing due for review.[/green]")
        return

    table = Table(title=f"Due reviews ({len(items)})")
    table.add_column("Item")
    table.add_column("Question")
    table.add_column("Status")
    table.add_column("Retries", justify="right")
    table.add_column("Next review")
    table.add_column("Priority", justify="right")
    for item in items[:limit]:
        table.add_row(
            item.id,
            item.question_id,
            style_status(item.status),
            str(item.retry_count),
            engine.ledger.review_progress_text(item, now),
            f"{engine.priority_score(item, now):.0f}",
        )
    console.print(table)


@app.command()
def review(
    item_id: str = typer.Argument(..., help="Wrong item id"),
    correct: bool = typer.Option(..., "--correct/--incorrect", help="Retry outcome"),
) -> None:
    """Record the outcome of a wrong-item retry."""
    now = datetime.now()
    engine = _build_engine()
    try:
        item = engine.record_review_outcome(item_id, correct, now)
    except PracticeEngineError as e:
        _fail(e)

    if item.status == WrongItemStatus.MASTERED:
        console.print("[bold green]Mastered![/bold green]")
    _show_item(engine, item, now)


@app.command()
def archive(
    item_id: str = typer.Argument(..., help="Wrong item id"),
) -> None:
    """Archive a wrong item."""
    engine = _build_engine()
    try:
        engine.archive_item(item_id, datetime.now())
    except PracticeEngineError as e:
        _fail(e)

    console.print(f"[green]Archived {item_id}[/green]")


@app.command()
def stats() -> None:
    """Show wrong-book statistics."""
    engine = _build_engine()
    summary = engine.get_statistics()

    table = Table(title="Wrong Items")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Total", str(summary.total_count))
    table.add_row("Pending", str(summary.pending_count))
    table.add_row("Reviewing", str(summary.reviewing_count))
    table.add_row("Mastered", str(summary.mastered_count))
    table.add_row("Archived", str(summary.archived_count))
    table.add_row("Due today", str(summary.today_review_count))
    table.add_row("Mastered rate", f"{summary.mastered_rate * 100:.0f}%")
    table.add_row("Reviewed this week", str(summary.weekly_completed_count))
    table.add_row("Completion rate", f"{summary.review_completion_rate * 100:.0f}%")
    console.print(table)

    if summary.weak_knowledge_points:
        console.print(f"Weak knowledge points: {', '.join(summary.weak_knowledge_points)}")
    common = summary.most_common_error_type
    if common is not None:
        console.print(f"Most common error: {common.display_name}")
    if summary.error_tags:
        tags = sorted(summary.error_tags.items(), key=lambda kv: kv[1], reverse=True)
        console.print("Error tags: " + ", ".join(f"{tag} ({count})" for tag, count in tags))


# =============================================================================
# Entry Point
# =============================================================================

def main() -> None:
    """CLI entry point."""
    configure_logging()
    app()


if __name__ == "__main__":
    main()
