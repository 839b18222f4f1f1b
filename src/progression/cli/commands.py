"""CLI commands for the progression engine.

Commands:
- init-db / import-catalog: set up the database and load courses
- enroll: enroll a student in a course
- check-access / update-progress / submit-attempt: student operations
- override / clear-override / reset: instructor operations
- overview / blocked / history / validate-graph: read-only views
"""

from dataclasses import replace
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.table import Table

from progression.config.app_config import load_app_config
from progression.core.errors import ProgressionError
from progression.core.models import (
    ContentKind,
    OverrideAction,
    ProgressStatus,
    ProgressUpdate,
)
from progression.core.progression_engine import ProgressionControlEngine
from progression.db.catalog_loader import CatalogImportError, import_catalog
from progression.db.catalog_repository import SqliteContentCatalog, SqliteEnrollmentDirectory
from progression.db.database import Database
from progression.db.engine_factory import build_engine

app = typer.Typer(
    name="progression",
    help="Prerequisite-gated progression control for courses, lessons and assessments.",
    no_args_is_help=True,
)

console = Console()

_STATUS_STYLE = {
    ProgressStatus.NOT_STARTED.value: "dim",
    ProgressStatus.IN_PROGRESS.value: "yellow",
    ProgressStatus.COMPLETED.value: "green",
    ProgressStatus.BLOCKED.value: "red",
}

DB_OPTION_HELP = "SQLite database file (defaults to the configured path)"


def _database(db_path: Path | None) -> Database:
    config = load_app_config()
    path = db_path or config.database.path
    return Database(path, busy_timeout_ms=config.database.busy_timeout_ms)


def _engine(db_path: Path | None) -> ProgressionControlEngine:
    config = load_app_config()
    if db_path is not None:
        config = replace(config, database=replace(config.database, path=db_path))
    return build_engine(config)


def _fail(message: str) -> NoReturn:
    console.print(f"[red]✗ {message}[/red]")
    raise typer.Exit(code=1)


def _status_text(status: str | None) -> str:
    if status is None:
        return "[dim]-[/dim]"
    style = _STATUS_STYLE.get(status, "")
    return f"[{style}]{status}[/{style}]" if style else status


# =============================================================================
# SETUP COMMANDS
# =============================================================================


@app.command(name="init-db")
def init_db(
    db: Path | None = typer.Option(None, "--db", help=DB_OPTION_HELP),
) -> None:
    """Create the database schema."""
    database = _database(db)
    database.initialize()
    console.print(f"[green]✓ Database ready[/green] [dim]{database.path}[/dim]")


@app.command(name="import-catalog")
def import_catalog_cmd(
    file: Path = typer.Argument(..., help="YAML course definition"),
    db: Path | None = typer.Option(None, "--db", help=DB_OPTION_HELP),
) -> None:
    """Import courses, lessons, assessments and enrollments from YAML."""
    database = _database(db)
    database.initialize()

    try:
        result = import_catalog(
            file, SqliteContentCatalog(database), SqliteEnrollmentDirectory(database)
        )
    except (FileNotFoundError, CatalogImportError) as e:
        _fail(str(e))

    console.print(f"[green]✓ Imported {', '.join(result.courses)}[/green]")
    console.print(f"  [dim]lessons:[/dim]     {result.lessons}")
    console.print(f"  [dim]assessments:[/dim] {result.assessments}")
    console.print(f"  [dim]enrollments:[/dim] {result.enrollments}")


@app.command()
def enroll(
    student_id: str = typer.Argument(..., help="Student ID"),
    course_id: str = typer.Argument(..., help="Course ID"),
    db: Path | None = typer.Option(None, "--db", help=DB_OPTION_HELP),
) -> None:
    """Enroll a student in a course."""
    database = _database(db)
    database.initialize()
    if SqliteContentCatalog(database).get_node(course_id, ContentKind.COURSE) is None:
        _fail(f"course '{course_id}' not found")
    SqliteEnrollmentDirectory(database).enroll(student_id, course_id)
    console.print(f"[green]✓ {student_id} enrolled in {course_id}[/green]")


# =============================================================================
# STUDENT COMMANDS
# =============================================================================


@app.command(name="check-access")
def check_access(
    student_id: str = typer.Argument(..., help="Student ID"),
    content_id: str = typer.Argument(..., help="Content ID"),
    kind: ContentKind = typer.Option(ContentKind.LESSON, "--kind", "-k", help="Content kind"),
    db: Path | None = typer.Option(None, "--db", help=DB_OPTION_HELP),
) -> None:
    """Show whether a student can access a content node."""
    engine = _engine(db)
    try:
        result = engine.can_access_content(student_id, content_id, kind)
    except ProgressionError as e:
        _fail(str(e))

    if result.can_access:
        suffix = f" ({result.reason.value})" if result.reason else ""
        console.print(f"[green]✓ Access granted{suffix}[/green]")
    else:
        console.print(f"[red]✗ Access denied: {result.reason.value}[/red]")
        if result.blocked_by:
            console.print(
                f"  [dim]next step:[/dim] {result.blocked_by.kind.value} {result.blocked_by.id}"
            )

    for prereq in result.prerequisites:
        mark = "[green]✓[/green]" if prereq.completed else "[red]✗[/red]"
        line = f"  {mark} {prereq.node.kind.value} {prereq.node.id} ({prereq.requirement.value})"
        if prereq.required_score is not None:
            line += f" [dim]score {prereq.score if prereq.score is not None else '-'}"
            line += f"/{prereq.required_score}[/dim]"
        console.print(line)


@app.command(name="update-progress")
def update_progress(
    student_id: str = typer.Argument(..., help="Student ID"),
    content_id: str = typer.Argument(..., help="Content ID"),
    status: ProgressStatus = typer.Argument(..., help="Target status"),
    kind: ContentKind = typer.Option(ContentKind.LESSON, "--kind", "-k", help="Content kind"),
    percentage: int = typer.Option(0, "--percentage", "-p", min=0, max=100),
    time_spent: int = typer.Option(0, "--time", "-t", min=0, help="Seconds spent"),
    db: Path | None = typer.Option(None, "--db", help=DB_OPTION_HELP),
) -> None:
    """Apply a progress update for a student."""
    engine = _engine(db)
    try:
        result = engine.update_progress(
            ProgressUpdate(
                student_id=student_id,
                content_id=content_id,
                content_kind=kind,
                status=status,
                completion_percentage=percentage,
                time_spent=time_spent,
            )
        )
    except ProgressionError as e:
        _fail(str(e))

    if not result.accepted:
        _fail(f"Update rejected ({result.code}): {result.message}")

    progress = result.progress
    console.print(
        f"[green]✓ {content_id}[/green] {_status_text(progress.status.value)} "
        f"[dim]{progress.completion_percentage}%[/dim]"
    )
    _print_unlocked(result.unlocked.to_dict())


@app.command(name="submit-attempt")
def submit_attempt(
    student_id: str = typer.Argument(..., help="Student ID"),
    assessment_id: str = typer.Argument(..., help="Assessment ID"),
    score: int = typer.Argument(..., min=0, max=100, help="Score 0-100"),
    time_spent: int = typer.Option(0, "--time", "-t", min=0, help="Seconds spent"),
    db: Path | None = typer.Option(None, "--db", help=DB_OPTION_HELP),
) -> None:
    """Record a scored attempt at an assessment."""
    engine = _engine(db)
    try:
        result = engine.submit_assessment_attempt(
            student_id, assessment_id, score, time_spent=time_spent
        )
    except ProgressionError as e:
        _fail(str(e))

    gate = result.gate
    verdict = "[green]passed[/green]" if result.attempt.passed else "[red]failed[/red]"
    console.print(f"Attempt {result.attempt.attempt_number}: {score} {verdict}")
    console.print(f"  [dim]best score:[/dim] {gate.best_score}/{gate.minimum_passing_score}")
    remaining = "unlimited" if gate.attempts_remaining is None else gate.attempts_remaining
    console.print(f"  [dim]attempts left:[/dim] {remaining}")
    console.print(f"  [dim]status:[/dim] {_status_text(result.progress.status.value)}")
    _print_unlocked(result.unlocked.to_dict())


def _print_unlocked(unlocked: dict[str, list[str]]) -> None:
    for kind, ids in unlocked.items():
        for content_id in ids:
            console.print(f"  [cyan]🔓 unlocked {kind[:-1]} {content_id}[/cyan]")


# =============================================================================
# INSTRUCTOR COMMANDS
# =============================================================================


@app.command()
def override(
    instructor_id: str = typer.Argument(..., help="Instructor ID"),
    student_id: str = typer.Argument(..., help="Student ID"),
    content_id: str = typer.Argument(..., help="Content ID"),
    action: OverrideAction = typer.Argument(..., help="unlock or block"),
    reason: str = typer.Option(..., "--reason", "-r", help="Why the override is granted"),
    kind: ContentKind = typer.Option(ContentKind.LESSON, "--kind", "-k", help="Content kind"),
    db: Path | None = typer.Option(None, "--db", help=DB_OPTION_HELP),
) -> None:
    """Grant an instructor unlock/block override."""
    engine = _engine(db)
    try:
        granted = engine.grant_override(
            instructor_id, student_id, content_id, kind, action, reason
        )
    except (ProgressionError, ValueError) as e:
        _fail(str(e))

    console.print(f"[green]✓ Override {granted.action.value} recorded[/green]")
    console.print(f"  [dim]id:[/dim] {granted.id}")


@app.command(name="clear-override")
def clear_override(
    instructor_id: str = typer.Argument(..., help="Instructor ID"),
    student_id: str = typer.Argument(..., help="Student ID"),
    content_id: str = typer.Argument(..., help="Content ID"),
    reason: str = typer.Option("", "--reason", "-r"),
    db: Path | None = typer.Option(None, "--db", help=DB_OPTION_HELP),
) -> None:
    """Clear the standing override of a student on a content node."""
    engine = _engine(db)
    cleared = engine.clear_override(instructor_id, student_id, content_id, reason)
    if cleared is None:
        console.print("[yellow]⚠ No standing override[/yellow]")
    else:
        console.print(f"[green]✓ Override {cleared.id} cleared[/green]")


@app.command()
def reset(
    instructor_id: str = typer.Argument(..., help="Instructor ID"),
    student_id: str = typer.Argument(..., help="Student ID"),
    content_id: str = typer.Argument(..., help="Content ID"),
    reason: str = typer.Option(..., "--reason", "-r"),
    kind: ContentKind = typer.Option(ContentKind.LESSON, "--kind", "-k", help="Content kind"),
    db: Path | None = typer.Option(None, "--db", help=DB_OPTION_HELP),
) -> None:
    """Reset a student's progress on a content node to not_started."""
    engine = _engine(db)
    try:
        progress = engine.reset_progress(instructor_id, student_id, content_id, kind, reason)
    except ValueError as e:
        _fail(str(e))

    if progress is None:
        console.print("[yellow]⚠ No progress to reset[/yellow]")
    else:
        console.print(f"[green]✓ {content_id} reset to not_started[/green]")


# =============================================================================
# READ-ONLY VIEWS
# =============================================================================


@app.command()
def overview(
    student_id: str = typer.Argument(..., help="Student ID"),
    course_id: str = typer.Argument(..., help="Course ID"),
    db: Path | None = typer.Option(None, "--db", help=DB_OPTION_HELP),
) -> None:
    """Show per-lesson progress of a student in a course."""
    engine = _engine(db)
    try:
        result = engine.course_progress_overview(student_id, course_id)
    except ProgressionError as e:
        _fail(str(e))

    table = Table(show_header=True, header_style="bold")
    table.add_column("Lesson")
    table.add_column("Access")
    table.add_column("Status")
    table.add_column("%", justify="right")
    table.add_column("Assessment")

    for line in result.lessons:
        progress = line.progress
        assessment = ""
        if line.assessment:
            assessment = line.assessment.assessment_id
            if line.assessment.passed:
                assessment += " [green]✓[/green]"
        table.add_row(
            line.lesson.id,
            "[green]open[/green]" if line.access.can_access else "[red]locked[/red]",
            _status_text(progress.status.value if progress else None),
            str(progress.completion_percentage if progress else 0),
            assessment,
        )

    console.print(table)
    console.print(
        f"Completed {result.completed_lessons}/{result.total_lessons} lessons "
        f"({result.overall_progress}%)"
    )
    if result.final_assessment:
        final = result.final_assessment
        state = "passed" if final.passed else ("open" if final.can_access else "locked")
        console.print(f"Final assessment {final.assessment_id}: {state}")


@app.command()
def blocked(
    student_id: str = typer.Argument(..., help="Student ID"),
    db: Path | None = typer.Option(None, "--db", help=DB_OPTION_HELP),
) -> None:
    """List content a student is blocked on."""
    engine = _engine(db)
    rows = engine.blocked_content(student_id)
    if not rows:
        console.print("[green]✓ Nothing blocked[/green]")
        return
    for row in rows:
        console.print(
            f"[red]■[/red] {row.content_kind.value} {row.content_id} "
            f"[dim]attempts {row.attempts_count}, best {row.best_score}[/dim]"
        )


@app.command()
def history(
    student_id: str = typer.Argument(..., help="Student ID"),
    content_id: str | None = typer.Option(None, "--content", "-c"),
    db: Path | None = typer.Option(None, "--db", help=DB_OPTION_HELP),
) -> None:
    """Show the audit trail of a student."""
    engine = _engine(db)
    events = engine.overrides.history(student_id, content_id)
    if not events:
        console.print("[dim]No audit events[/dim]")
        return
    for event in events:
        actor = event.actor_id or "system"
        console.print(
            f"[dim]{event.created_at}[/dim] {event.event_type} "
            f"{event.content_kind} {event.content_id} [dim]by {actor}[/dim]"
        )


@app.command(name="validate-graph")
def validate_graph(
    course_id: str = typer.Argument(..., help="Course ID"),
    db: Path | None = typer.Option(None, "--db", help=DB_OPTION_HELP),
) -> None:
    """Check a course's prerequisite graph for cycles."""
    engine = _engine(db)
    reports = engine.resolver.validate_course(course_id)
    if not reports:
        console.print(f"[green]✓ {course_id}: no prerequisite cycles[/green]")
        return
    for report in reports:
        console.print(f"[red]✗ cycle:[/red] {' -> '.join(report.cycle)}")
    raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
