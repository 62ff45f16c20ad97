"""CLI entrypoint for learning-feed."""

import logging
from collections.abc import Callable
from pathlib import Path

import rich_click as click

from learning_feed import __version__
from learning_feed.content.controllers import (
    AddRecentCommand,
    CompleteContentCommand,
    ContentCliController,
    ContentDbCommand,
    FailContentCommand,
    GenerateCommand,
    ListCommand,
    MarkViewedCommand,
    ToggleSavedCommand,
)
from learning_feed.content.errors import ContentError

click.rich_click.USE_MARKDOWN = True
CONTENT_CONTROLLER = ContentCliController()

db_path_option = click.option(
    "--db-path",
    type=click.Path(path_type=Path),
    default=None,
    help="SQLite DB path.",
)


@click.group()
@click.version_option(version=__version__, prog_name="learning-feed")
@click.option("--verbose", "-v", is_flag=True, help="Log lifecycle events to stderr.")
def learning_feed(verbose: bool) -> None:
    """Personalized learning feed CLI."""

    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@learning_feed.command("generate")
@db_path_option
@click.option(
    "--wait/--no-wait",
    default=True,
    show_default=True,
    help="Block until the content is written, fails or times out.",
)
def generate(db_path: Path | None, wait: bool) -> None:
    """Request new content for the configured user.

    Recent history summaries are sent along so the generator avoids repeating topics.
    """

    _run(lambda: CONTENT_CONTROLLER.generate(GenerateCommand(db_path=db_path, wait=wait)))


@learning_feed.group()
def content() -> None:
    """Generated content records (`complete` and `fail` stand in for the worker)."""


@content.command("complete")
@db_path_option
@click.option("--request-id", required=True, help="Request id from `generate`.")
@click.option("--title", required=True, help="Article title.")
@click.option("--body", required=True, help="Article body.")
@click.option("--category", required=True, help="Article category.")
@click.option("--summary", default="", help="Short article summary.")
@click.option("--topic-summary", default=None, help="Topic summary for anti-repetition history.")
def content_complete(  # noqa: PLR0913
    db_path: Path | None,
    request_id: str,
    title: str,
    body: str,
    category: str,
    summary: str,
    topic_summary: str | None,
) -> None:
    """Mark a request completed with its article."""

    _run(
        lambda: CONTENT_CONTROLLER.complete_content(
            CompleteContentCommand(
                db_path=db_path,
                request_id=request_id,
                title=title,
                body=body,
                category=category,
                summary=summary,
                topic_summary=topic_summary,
            ),
        ),
    )


@content.command("fail")
@db_path_option
@click.option("--request-id", required=True, help="Request id from `generate`.")
@click.option("--error", default=None, help="Error message reported by the worker.")
def content_fail(db_path: Path | None, request_id: str, error: str | None) -> None:
    """Mark a request failed."""

    _run(
        lambda: CONTENT_CONTROLLER.fail_content(
            FailContentCommand(db_path=db_path, request_id=request_id, error=error),
        ),
    )


@content.command("latest")
@db_path_option
def content_latest(db_path: Path | None) -> None:
    """Show the newest completed content."""

    _run(lambda: CONTENT_CONTROLLER.latest_content(ContentDbCommand(db_path=db_path)))


@learning_feed.group()
def history() -> None:
    """Anti-repetition history commands."""


@history.command("list")
@db_path_option
@click.option(
    "--limit",
    type=click.IntRange(min=1, max=500),
    default=20,
    show_default=True,
    help="Max number of entries to print.",
)
def history_list(db_path: Path | None, limit: int) -> None:
    """List history entries, most recent first."""

    _run(lambda: CONTENT_CONTROLLER.list_history(ListCommand(db_path=db_path, limit=limit)))


@history.command("summaries")
@db_path_option
@click.option(
    "--limit",
    type=click.IntRange(min=0, max=500),
    default=20,
    show_default=True,
    help="Max number of summaries.",
)
def history_summaries(db_path: Path | None, limit: int) -> None:
    """Show the topic summaries the next generation request would send."""

    _run(lambda: CONTENT_CONTROLLER.history_summaries(ListCommand(db_path=db_path, limit=limit)))


@history.command("mark-viewed")
@db_path_option
@click.option("--entry-id", default=None, help="History entry id.")
@click.option("--request-id", default=None, help="Request id of the entry.")
def history_mark_viewed(db_path: Path | None, entry_id: str | None, request_id: str | None) -> None:
    """Mark a history entry viewed."""

    if entry_id is None and request_id is None:
        raise click.UsageError("Pass --entry-id or --request-id.")
    _run(
        lambda: CONTENT_CONTROLLER.mark_viewed(
            MarkViewedCommand(db_path=db_path, entry_id=entry_id, request_id=request_id),
        ),
    )


@history.command("stats")
@db_path_option
def history_stats(db_path: Path | None) -> None:
    """Show this week's read count and the saved count."""

    _run(lambda: CONTENT_CONTROLLER.history_stats(ContentDbCommand(db_path=db_path)))


@history.command("clear")
@db_path_option
@click.confirmation_option(prompt="Delete all history entries?")
def history_clear(db_path: Path | None) -> None:
    """Delete all history entries."""

    _run(lambda: CONTENT_CONTROLLER.clear_history(ContentDbCommand(db_path=db_path)))


@learning_feed.group()
def recent() -> None:
    """Recently read articles."""


@recent.command("list")
@db_path_option
def recent_list(db_path: Path | None) -> None:
    """List recently read articles, newest first."""

    _run(lambda: CONTENT_CONTROLLER.list_recent(ContentDbCommand(db_path=db_path)))


@recent.command("add")
@db_path_option
@click.option("--title", required=True, help="Article title.")
@click.option("--body", required=True, help="Article body.")
@click.option("--category", required=True, help="Article category.")
def recent_add(db_path: Path | None, title: str, body: str, category: str) -> None:
    """Remember an article as read."""

    _run(
        lambda: CONTENT_CONTROLLER.add_recent(
            AddRecentCommand(db_path=db_path, title=title, body=body, category=category),
        ),
    )


@recent.command("clear")
@db_path_option
def recent_clear(db_path: Path | None) -> None:
    """Forget all recently read articles."""

    _run(lambda: CONTENT_CONTROLLER.clear_recent(ContentDbCommand(db_path=db_path)))


@learning_feed.group()
def saved() -> None:
    """Saved content."""


@saved.command("list")
@db_path_option
@click.option(
    "--limit",
    type=click.IntRange(min=1, max=500),
    default=50,
    show_default=True,
    help="Max number of saved records to print.",
)
def saved_list(db_path: Path | None, limit: int) -> None:
    """List saved content, most recently saved first."""

    _run(lambda: CONTENT_CONTROLLER.list_saved(ListCommand(db_path=db_path, limit=limit)))


@saved.command("toggle")
@db_path_option
@click.option("--request-id", required=True, help="Request id of completed content.")
def saved_toggle(db_path: Path | None, request_id: str) -> None:
    """Save or unsave generated content."""

    _run(
        lambda: CONTENT_CONTROLLER.toggle_saved(
            ToggleSavedCommand(db_path=db_path, request_id=request_id),
        ),
    )


def _run(action: Callable[[], list[str]]) -> None:
    try:
        lines = action()
    except (ContentError, ValueError) as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(lines)


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    learning_feed()
