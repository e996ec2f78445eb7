"""
Typer CLI for the studyunlock service.

Commands:
    studyunlock db init                  - Create database tables
    studyunlock db check                 - Check database connectivity
    studyunlock match run JOB COURSE     - Match a content job against a course
    studyunlock flashcards generate      - Create locked flashcards for a course
    studyunlock review due               - List flashcards due for review
    studyunlock stats                    - Show unlock statistics
    studyunlock serve                    - Run the API server

Usage:
    studyunlock --help
    studyunlock match run 6f1c... 0b7e... --user alice
    studyunlock review due --user alice
"""

from __future__ import annotations

from uuid import UUID

import typer
from loguru import logger
from rich import print as rprint
from rich.console import Console
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from config import get_settings
from studyunlock import __version__
from studyunlock.core.exceptions import StudyUnlockError
from studyunlock.core.log import setup_logging
from studyunlock.db.database import check_connection, init_db, session_scope

app = typer.Typer(
    help="studyunlock CLI: content -> concept matches -> unlocked flashcards",
    no_args_is_help=True,
)

console = Console()


# ========================================
# DATABASE COMMANDS
# ========================================

db_app = typer.Typer(help="Database management")
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """
    Create all tables from the SQLAlchemy models.

    Safe to run multiple times (idempotent).
    """
    logger.info("Initializing database tables...")
    try:
        init_db()
    except SQLAlchemyError as e:
        rprint(f"[red]✗[/red] Database initialization failed: {e}")
        raise typer.Exit(code=1)
    rprint("[green]✓[/green] Database initialized!")


@db_app.command("check")
def db_check() -> None:
    """Check that the configured database is reachable."""
    try:
        check_connection()
    except SQLAlchemyError as e:
        rprint(f"[red]✗[/red] Database unreachable: {e}")
        raise typer.Exit(code=1)
    rprint("[green]✓[/green] Database connection OK")


# ========================================
# MATCHING COMMANDS
# ========================================

match_app = typer.Typer(help="Concept matching")
app.add_typer(match_app, name="match")


@match_app.command("run")
def match_run(
    content_job_id: UUID = typer.Argument(..., help="Content job to match"),
    course_id: UUID = typer.Argument(..., help="Course whose syllabus to match against"),
    user: str = typer.Option(..., "--user", "-u", help="Owner of the content job"),
    no_llm: bool = typer.Option(False, "--no-llm", help="Skip LLM verification of borderline matches"),
) -> None:
    """Match a content job's concepts to a syllabus and unlock covered flashcards."""
    from studyunlock.matching import ConceptMatcher, LLMVerifier
    from studyunlock.matching.pipeline import run_matching_for_job

    with session_scope() as session:
        try:
            matcher = ConceptMatcher(session, verifier=LLMVerifier(enabled=False) if no_llm else None)
            outcome = run_matching_for_job(
                session, content_job_id, course_id, user, matcher=matcher, create_flashcards=True
            )
        except StudyUnlockError as e:
            rprint(f"[red]✗[/red] {e}")
            raise typer.Exit(code=1)

        if not outcome.success:
            rprint(f"[red]✗[/red] Matching failed: {outcome.error}")
            raise typer.Exit(code=1)

        table = Table(title=f"Matching ({outcome.duration_ms} ms)")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right")
        table.add_row("Extracted concepts", str(outcome.total_concepts))
        table.add_row("Candidates evaluated", str(outcome.evaluated))
        table.add_row("High confidence", str(outcome.high))
        table.add_row("Medium confidence", str(outcome.medium))
        table.add_row("Avg confidence", f"{outcome.avg_confidence:.2f}")
        table.add_row("Created / updated", f"{outcome.created} / {outcome.updated}")
        console.print(table)

        for unlock in outcome.unlocked or []:
            rprint(f"[green]🔓[/green] {unlock.question} [dim]({unlock.confidence:.0%})[/dim]")


# ========================================
# FLASHCARD COMMANDS
# ========================================

flashcards_app = typer.Typer(help="Flashcards")
app.add_typer(flashcards_app, name="flashcards")


@flashcards_app.command("generate")
def flashcards_generate(
    course_id: UUID = typer.Argument(..., help="Course to create flashcards for"),
    user: str = typer.Option(..., "--user", "-u"),
) -> None:
    """Create locked flashcards for every syllabus concept of a course."""
    from studyunlock.flashcards import UnlockService

    with session_scope() as session:
        try:
            created = UnlockService(session).ensure_course_flashcards(user, course_id)
        except StudyUnlockError as e:
            rprint(f"[red]✗[/red] {e}")
            raise typer.Exit(code=1)
    rprint(f"[green]✓[/green] Created {created} locked flashcards")


# ========================================
# REVIEW COMMANDS
# ========================================

review_app = typer.Typer(help="Spaced-repetition reviews")
app.add_typer(review_app, name="review")


@review_app.command("due")
def review_due(
    user: str = typer.Option(..., "--user", "-u"),
    limit: int = typer.Option(20, "--limit", "-l", help="Max cards to show"),
) -> None:
    """List flashcards whose next review is due."""
    from studyunlock.reviews import ReviewSessionService

    with session_scope() as session:
        cards = ReviewSessionService(session).get_due_flashcards(user)
        if not cards:
            rprint("[dim]Nothing due. Come back later.[/dim]")
            return

        table = Table(title=f"Due for review ({len(cards)})")
        table.add_column("Question", style="cyan")
        table.add_column("State")
        table.add_column("Reviews", justify="right")
        table.add_column("Due", justify="right")
        for card in cards[:limit]:
            table.add_row(
                card.question,
                card.state,
                f"{card.times_correct}/{card.times_reviewed}",
                f"{card.next_review_at:%Y-%m-%d %H:%M}",
            )
        console.print(table)


# ========================================
# STATS
# ========================================


@app.command("stats")
def stats(user: str = typer.Option(..., "--user", "-u")) -> None:
    """Show unlock statistics, streaks and milestones."""
    from studyunlock.flashcards import get_user_unlock_stats

    with session_scope() as session:
        data = get_user_unlock_stats(session, user)

    table = Table(title=f"Unlock stats for {user}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Unlocked", str(data["total_unlocks"]))
    table.add_row("Still locked", str(data["total_locked"]))
    table.add_row("Mastered", str(data["total_mastered"]))
    table.add_row("Unlock rate", f"{data['unlock_rate']:.0%}")
    table.add_row("Current streak", f"{data['current_streak']} days")
    table.add_row("Longest streak", f"{data['longest_streak']} days")
    console.print(table)


# ========================================
# SERVER
# ========================================


@app.command("serve")
def serve(
    host: str = typer.Option(None, "--host", help="Bind host (default: from config)"),
    port: int = typer.Option(None, "--port", help="Bind port (default: from config)"),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on code changes"),
) -> None:
    """Run the FastAPI server."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "studyunlock.api.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@app.command("version")
def version() -> None:
    """Show version information."""
    rprint(f"[bold]studyunlock[/bold] v{__version__}")
    rprint("  Consume content, unlock flashcards")


def main() -> None:
    """Entry point for the CLI."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_file)
    app()


if __name__ == "__main__":
    main()
