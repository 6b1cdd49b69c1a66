"""wordwise CLI: review, queue, stats and administrative commands."""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Annotated, Any

import typer

from wordwise.application.config import resolve_config
from wordwise.application.progress_engine import ProgressEngine
from wordwise.domain.exceptions import WordwiseError
from wordwise.domain.models import CardProgress, ProgressStats, StateThreshold

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="wordwise: spaced-repetition scheduling for vocabulary flashcards.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

thresholds_app = typer.Typer(
    help="Inspect and edit the state-threshold table.", no_args_is_help=True
)
app.add_typer(thresholds_app, name="thresholds")

config_app = typer.Typer(help="Manage wordwise configuration.", no_args_is_help=True)
app.add_typer(config_app, name="config")

cards_app = typer.Typer(help="Manage the flashcard catalog.", no_args_is_help=True)
app.add_typer(cards_app, name="cards")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

_LOG_LEVELS = {0: logging.WARNING, 1: logging.INFO}


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    backend: Annotated[str | None, typer.Option(help="Storage backend: memory, sql.")] = None,
    database_url: Annotated[str | None, typer.Option(help="SQLAlchemy database URL.")] = None,
    thresholds_file: Annotated[
        Path | None, typer.Option(help="YAML file holding the threshold table.")
    ] = None,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
):
    """Global settings for wordwise."""
    ctx.ensure_object(dict)
    ctx.obj["overrides"] = {
        "backend": backend,
        "database_url": database_url,
        "thresholds_file": thresholds_file,
    }
    logging.getLogger().setLevel(_LOG_LEVELS.get(verbose, logging.DEBUG))


def _engine(ctx: typer.Context) -> ProgressEngine:
    from wordwise.application.factory import build_engine

    overrides = (ctx.obj or {}).get("overrides", {})
    return build_engine(resolve_config(overrides))


def _run(coro) -> Any:
    """Run an engine coroutine, turning engine errors into a clean exit."""
    try:
        return asyncio.run(coro)
    except WordwiseError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from e


def _progress_to_dict(record: CardProgress) -> dict[str, Any]:
    return {
        "user_id": record.user_id,
        "flashcard_id": record.flashcard_id,
        "state": record.state.value,
        "mastery_level": record.mastery_level,
        "correct_streak": record.correct_streak,
        "review_count": record.review_count,
        "score": record.score,
        "last_reviewed": record.last_reviewed.isoformat() if record.last_reviewed else None,
        "next_review": record.next_review.isoformat() if record.next_review else None,
        "response_time_ms": record.response_time_ms,
    }


def _stats_to_dict(stats: ProgressStats) -> dict[str, Any]:
    return {
        "total_words": stats.total_words,
        "words_mastered": stats.words_mastered,
        "best_streak": stats.best_streak,
        "average_score": stats.average_score,
        "total_reviews": stats.total_reviews,
        "due_count": stats.due_count,
        "state_counts": {state.value: n for state, n in stats.state_counts.items()},
    }


def _threshold_to_dict(threshold: StateThreshold) -> dict[str, Any]:
    return {
        "state": threshold.state.value,
        "min_mastery_level": threshold.min_mastery_level,
        "min_correct_streak": threshold.min_correct_streak,
        "min_review_count": threshold.min_review_count,
        "score_weight": threshold.score_weight,
        "next_review_delay": threshold.next_review_delay,
    }


# ---------------------------------------------------------------------------
# Root commands
# ---------------------------------------------------------------------------


@app.command()
def review(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="Reviewing user.")],
    flashcard_id: Annotated[str, typer.Argument(help="Reviewed flashcard.")],
    correct: Annotated[
        bool, typer.Option("--correct/--incorrect", help="Outcome of the review.")
    ] = True,
    response_time: Annotated[
        float | None, typer.Option("--response-time", help="Response latency in ms.")
    ] = None,
):
    """[bold green]Record[/bold green] a review and print the updated progress."""
    engine = _engine(ctx)
    record = _run(engine.apply_review(user_id, flashcard_id, correct, response_time))
    typer.echo(json.dumps(_progress_to_dict(record), indent=2))


@app.command()
def queue(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="User to build the practice queue for.")],
    limit: Annotated[int | None, typer.Option(help="Show at most this many cards.")] = None,
):
    """Print the smart-practice queue: due, then unseen, then scheduled cards."""
    engine = _engine(ctx)
    card_ids = _run(engine.build_queue(user_id))
    if limit is not None:
        card_ids = card_ids[:limit]
    for card_id in card_ids:
        typer.echo(card_id)


@app.command()
def stats(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="User to summarize.")],
):
    """Summarize a user's progress as JSON."""
    engine = _engine(ctx)
    summary = _run(engine.get_stats(user_id))
    typer.echo(json.dumps(_stats_to_dict(summary), indent=2))


@app.command()
def words(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="User whose cards are listed.")],
    state: Annotated[
        str | None, typer.Option(help="Only list cards in this state, e.g. learning.")
    ] = None,
):
    """List a user's reviewed cards grouped by mastery state."""
    engine = _engine(ctx)
    records = _run(engine.list_progress(user_id, state))
    typer.echo(json.dumps([_progress_to_dict(r) for r in records], indent=2))


@app.command()
def reset(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="User whose progress is wiped.")],
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Bypass confirmation.")
    ] = False,
):
    """[bold red]Delete[/bold red] all progress of a user."""
    if not force and not typer.confirm(f"Delete all progress for '{user_id}'?"):
        raise typer.Abort()
    engine = _engine(ctx)
    _run(engine.reset_progress(user_id))
    typer.echo(f"Progress reset for {user_id}.")


@app.command()
def server(
    host: Annotated[str | None, typer.Option(help="Bind address.")] = None,
    port: Annotated[int | None, typer.Option(help="Port to listen on.")] = None,
    reload: Annotated[bool, typer.Option(help="Auto-reload on code changes.")] = False,
):
    """Serve the HTTP API with uvicorn."""
    import uvicorn

    config = resolve_config({"host": host, "port": port})
    uvicorn.run("wordwise.server:app", host=config.host, port=config.port, reload=reload)


# ---------------------------------------------------------------------------
# Cards
# ---------------------------------------------------------------------------


@cards_app.command("add")
def cards_add(
    ctx: typer.Context,
    card_ids: Annotated[list[str], typer.Argument(help="Flashcard IDs to add.")],
):
    """Add flashcards to the catalog."""
    from wordwise.application.factory import get_store

    store = get_store(resolve_config((ctx.obj or {}).get("overrides", {})))
    added = store.add_flashcards(card_ids)
    typer.echo(f"Added {added} flashcard(s).")


# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------


@thresholds_app.command("show")
def thresholds_show(ctx: typer.Context):
    """Print the threshold table the engine would use for the next review."""
    engine = _engine(ctx)
    rows = _run(engine.current_thresholds())
    typer.echo(json.dumps([_threshold_to_dict(t) for t in rows], indent=2))


@thresholds_app.command("check")
def thresholds_check(
    path: Annotated[Path, typer.Argument(help="YAML thresholds file to validate.")],
):
    """Validate a thresholds file without applying it."""
    from wordwise.infrastructure.adapters.yaml_thresholds import load_thresholds_file

    try:
        rows = load_thresholds_file(path)
    except WordwiseError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from e

    typer.echo(f"{len(rows)} valid row(s): " + ", ".join(t.state.value for t in rows))


@thresholds_app.command("set")
def thresholds_set(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="YAML thresholds file to apply.")],
):
    """
    [bold yellow]Replace[/bold yellow] the threshold table with the rows in a file.

    Every row must be valid; nothing is applied otherwise.
    """
    from wordwise.infrastructure.adapters.yaml_thresholds import load_thresholds_file

    try:
        rows = load_thresholds_file(path, strict=True)
    except WordwiseError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from e

    engine = _engine(ctx)
    table = _run(engine.replace_thresholds(rows))
    typer.echo(f"Applied {len(table)} row(s): " + ", ".join(t.state.value for t in table))


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display the resolved configuration as JSON."""
    config = resolve_config((ctx.obj or {}).get("overrides", {}))
    typer.echo(json.dumps(config.model_dump(mode="json"), indent=2))


def main():
    app()


if __name__ == "__main__":
    main()
