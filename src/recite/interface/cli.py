"""recite CLI: review queue, outcome recording, practice history, statistics and export."""

import json
import logging
import logging.handlers
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict
from pathlib import Path
from typing import Annotated, Any

import typer

from recite.application.config import AppConfig, resolve_config
from recite.application.factory import get_scheduler_service
from recite.application.service import SchedulerService
from recite.domain.constants import LOG_BACKUP_COUNT, LOG_MAX_BYTES
from recite.domain.errors import InvalidPracticeAttempt, InvalidQualityRating, StorageFailure
from recite.domain.progress.models import ProgressEntry
from recite.infrastructure.serialization import (
    attempt_to_jsonable,
    dump_progress_map,
    entry_to_jsonable,
)

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="recite: spaced-repetition review scheduler for memorized text.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage recite configuration.")
app.add_typer(config_app, name="config")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

LOG_FORMAT = "%(levelname)s:%(name)s:%(message)s"
FILE_LOG_FORMAT = "%(asctime)s %(levelname)s:%(name)s:%(message)s"
logger = logging.getLogger(__name__)


def _configure_logging(verbose: int, log_file: Path | None = None) -> None:
    level = logging.WARNING
    if verbose >= 3:
        level = logging.DEBUG
    elif verbose == 2:
        level = logging.INFO

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(logging.Formatter(LOG_FORMAT))
    handlers: list[logging.Handler] = [console]

    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=LOG_MAX_BYTES,
                backupCount=LOG_BACKUP_COUNT,
                encoding="utf-8",
            )
        except OSError as e:
            typer.secho(f"Cannot write log file {log_file}: {e}", fg="yellow", err=True)
        else:
            file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
            handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _resolve_with_overrides(**overrides: Any) -> AppConfig:
    try:
        return resolve_config(overrides)
    except ValueError as e:
        typer.secho(f"Invalid configuration: {e}", fg="red", err=True)
        raise typer.Exit(2) from e


@contextmanager
def _open_service(ctx: typer.Context, **overrides: Any) -> Iterator[SchedulerService]:
    """
    Resolve config, apply its logging settings and yield a wired service.

    Storage errors anywhere inside the block end the command with exit code 1;
    the service's adapters are closed either way.
    """
    # 0 means -v was not given, so the configured verbosity applies
    config = _resolve_with_overrides(verbose=ctx.obj.get("verbose") or None, **overrides)
    _configure_logging(config.verbose, config.log_file())
    try:
        with get_scheduler_service(config) as service:
            yield service
    except StorageFailure as e:
        typer.secho(f"Storage error: {e}", fg="red", err=True)
        raise typer.Exit(1) from e


def _format_entry(entry: ProgressEntry) -> str:
    return (
        f"{entry.item_key}: interval={entry.interval}d efactor={entry.efactor:.2f} "
        f"strength={entry.strength:.2f} reviews={entry.total_reviews} "
        f"streak={entry.consecutive_correct} next={entry.next_review.isoformat(timespec='minutes')}"
    )


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
):
    """Global settings for recite."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _configure_logging(verbose or 1)


# ---------------------------------------------------------------------------
# Root commands
# ---------------------------------------------------------------------------


@app.command("queue")
def queue(
    ctx: typer.Context,
    max_items: Annotated[
        int | None, typer.Option("--max-items", "-n", help="Maximum queue length.")
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show items due for review, highest priority first."""
    with _open_service(ctx) as service:
        result = service.build_queue(max_items)

    if json_output:
        payload = {
            "queue": result.queue,
            "scores": {key: result.scores[key] for key in result.queue},
            "eligible": result.eligible_count,
            "truncated": result.truncated,
        }
        typer.echo(json.dumps(payload, indent=2))
        return

    if not result.queue:
        typer.secho("Nothing due.", fg="green")
        return

    for position, key in enumerate(result.queue, start=1):
        typer.echo(f"{position:>3}. {key}  (priority {result.scores[key]:.2f})")
    if result.truncated:
        typer.secho(f"{len(result.truncated)} more due items not shown.", fg="yellow")


@app.command("review")
def review(
    ctx: typer.Context,
    item_key: Annotated[str, typer.Argument(help="Item to record an outcome for.")],
    quality: Annotated[int, typer.Argument(help="Recall quality, 0 (blackout) to 5 (perfect).")],
):
    """Record one practice outcome and reschedule the item."""
    with _open_service(ctx) as service:
        try:
            entry = service.report_outcome(item_key, quality)
        except InvalidQualityRating as e:
            typer.secho(str(e), fg="red", err=True)
            raise typer.Exit(2) from e

    typer.echo(_format_entry(entry))


@app.command("show")
def show(
    ctx: typer.Context,
    item_key: Annotated[str, typer.Argument(help="Item to inspect.")],
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show scheduling state and retention for one item."""
    with _open_service(ctx) as service:
        entry = service.get_progress(item_key)
        if entry is None:
            typer.secho(f"No progress recorded for {item_key}.", fg="yellow", err=True)
            raise typer.Exit(1)
        metrics = service.describe(item_key)
        practice = service.get_practice_stats(item_key)

    if json_output:
        payload = entry_to_jsonable(entry)
        payload["metrics"] = asdict(metrics) if metrics else None
        payload["practice"] = asdict(practice)
        typer.echo(json.dumps(payload, indent=2, default=str))
        return

    typer.echo(_format_entry(entry))
    if metrics:
        typer.echo(
            f"  retention={metrics.retention:.2f} overdue={metrics.days_overdue:.1f}d "
            f"priority={metrics.priority:.2f} due={'yes' if metrics.is_due else 'no'}"
        )
    if entry.mistakes:
        typer.echo(f"  mistakes={len(entry.mistakes)}")
    if practice.total_sessions:
        typer.echo(
            f"  practice sessions={practice.total_sessions} "
            f"average={practice.average_accuracy}% best={practice.best_accuracy}%"
        )


@app.command("init")
def init(
    ctx: typer.Context,
    item_keys: Annotated[list[str], typer.Argument(help="Items to start tracking.")],
):
    """Start tracking items; they are due immediately."""
    with _open_service(ctx) as service:
        for key in item_keys:
            entry = service.initialize_item(key)
            typer.echo(f"Tracking {entry.item_key} (reviews={entry.total_reviews})")


@app.command("practice")
def practice(
    ctx: typer.Context,
    item_key: Annotated[str, typer.Argument(help="Item that was recited.")],
    accuracy: Annotated[int, typer.Argument(help="Percentage of words recited correctly.")],
    total_words: Annotated[int, typer.Option("--words", help="Words in the text.")] = 0,
    correct_words: Annotated[int, typer.Option("--correct", help="Words recited correctly.")] = 0,
    duration: Annotated[
        float, typer.Option("--duration", help="Length of the attempt in seconds.")
    ] = 0.0,
):
    """Log a practice attempt. The review schedule is not changed."""
    with _open_service(ctx) as service:
        try:
            attempt = service.record_practice(
                item_key,
                accuracy,
                total_words=total_words,
                correct_words=correct_words,
                duration_seconds=duration,
            )
        except InvalidPracticeAttempt as e:
            typer.secho(str(e), fg="red", err=True)
            raise typer.Exit(2) from e

    typer.echo(f"Logged practice for {attempt.item_key}: {attempt.accuracy}%")


@app.command("history")
def history(
    ctx: typer.Context,
    item_key: Annotated[
        str | None, typer.Argument(help="Only show attempts for this item.")
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """List practice attempts, oldest first."""
    with _open_service(ctx) as service:
        attempts = service.get_practice_history(item_key)
        summary = service.get_practice_stats(item_key) if item_key else None

    if json_output:
        payload: dict[str, Any] = {"attempts": [attempt_to_jsonable(a) for a in attempts]}
        if summary is not None:
            payload["stats"] = asdict(summary)
        typer.echo(json.dumps(payload, indent=2, default=str))
        return

    if not attempts:
        typer.secho("No practice recorded.", fg="yellow")
        return

    for a in attempts:
        typer.echo(
            f"{a.practiced_at.isoformat(timespec='minutes')}  {a.item_key}  {a.accuracy}%  "
            f"{a.correct_words}/{a.total_words} words  {a.duration_seconds:.0f}s"
        )
    if summary is not None:
        typer.secho(
            f"{summary.total_sessions} sessions, average {summary.average_accuracy}%, "
            f"best {summary.best_accuracy}%",
            fg="green",
        )


@app.command("stats")
def stats(
    ctx: typer.Context,
    target: Annotated[
        int | None, typer.Option("--target", help="Items you aim to hold with strong recall.")
    ] = None,
    daily_rate: Annotated[
        float, typer.Option("--rate", help="New items memorized per day.")
    ] = 1.0,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Summarize progress across all items."""
    with _open_service(ctx) as service:
        summary = service.get_stats()
        completion = (
            service.predict_completion(target, daily_rate) if target is not None else None
        )

    if json_output:
        payload: dict[str, Any] = asdict(summary)
        if target is not None:
            payload["predicted_completion"] = completion.isoformat() if completion else None
        typer.echo(json.dumps(payload, indent=2))
        return

    typer.echo(f"Items:            {summary.total_items}")
    typer.echo(f"Average strength: {summary.average_strength:.2f}")
    typer.echo(f"Strong / weak:    {summary.strong_items} / {summary.weak_items}")
    typer.echo(f"Due today:        {summary.due_today}")
    typer.echo(f"Overdue:          {summary.overdue}")
    if target is not None:
        typer.echo(f"Target reached:   {completion.isoformat() if completion else 'n/a'}")


@app.command("export")
def export(
    ctx: typer.Context,
    path: Annotated[
        Path | None, typer.Argument(help="Destination file. Prints to stdout if omitted.")
    ] = None,
):
    """Export the full progress map as JSON."""
    with _open_service(ctx) as service:
        document = dump_progress_map(service.get_all_progress(), indent=2)

    if path is None:
        typer.echo(document)
        return
    path.write_text(document, encoding="utf-8")
    typer.secho(f"Exported progress to {path}", fg="green")


@app.command("session")
def session(
    ctx: typer.Context,
    max_items: Annotated[
        int | None, typer.Option("--max-items", "-n", help="Maximum items this sitting.")
    ] = None,
    requeue: Annotated[
        bool | None,
        typer.Option(
            "--requeue/--keep",
            help="Send items rated below 4 to the back of the queue instead of leaving them.",
        ),
    ] = None,
):
    """Run an interactive review sitting."""
    from recite.application.session import ReviewSession

    policy = None if requeue is None else ("requeue" if requeue else "keep")
    with _open_service(ctx, low_quality_policy=policy) as service:
        sitting = ReviewSession(service, policy=service.low_quality_policy, max_items=max_items)
        queue = sitting.start()
        if not queue:
            typer.secho("Nothing due.", fg="green")
            sitting.end()
            return

        typer.echo(f"{len(queue)} items due. Enter a quality 0-5, or leave blank to stop.")
        try:
            while (item_key := sitting.next_item()) is not None:
                answer = typer.prompt(f"{item_key}", default="", show_default=False).strip()
                if not answer:
                    break
                try:
                    entry = sitting.record_outcome(item_key, int(answer))
                except ValueError:
                    typer.secho("Quality must be a whole number from 0 to 5.", fg="red")
                    continue
                typer.echo(f"  next review in {entry.interval}d")
        finally:
            summary = sitting.end()

    if summary:
        typer.secho(
            f"Reviewed {len(summary.touched)} items ({summary.outcomes} outcomes), "
            f"{len(summary.remaining)} left.",
            fg="green",
        )


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Display final resolved configuration."""
    config = _resolve_with_overrides()
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    d["resolved_store_path"] = str(config.resolved_store_path())
    d["resolved_practice_path"] = str(config.resolved_practice_path())
    typer.echo(json.dumps(d, indent=2, default=str))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
