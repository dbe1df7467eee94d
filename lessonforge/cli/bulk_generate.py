"""Operator CLI for bulk lesson and practice generation."""

from __future__ import annotations

import asyncio
import json
import os
import signal
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.text import Text

from apps.orchestrator.ledger import LogEntry, LogKind
from apps.orchestrator.runner import TopicOutcome
from catalog.models import ArtifactKind
from lessonforge.core.errors import LessonForgeError
from lessonforge.pipeline import GenerationContext, bootstrap_generation

ENV_REPO_ROOT = "LESSONFORGE_REPO_ROOT"

KIND_STYLES = {
    LogKind.OK: "green",
    LogKind.ERROR: "red",
    LogKind.SKIP: "dim",
    LogKind.INFO: "navy_blue",
    LogKind.DONE: "dark_orange",
}


def _resolve_repo_root() -> Path:
    override = os.environ.get(ENV_REPO_ROOT)
    if override:
        return Path(override).expanduser().resolve()
    return Path(__file__).resolve().parents[2]


app = typer.Typer(help="Generate lessons or practice questions for every subtopic of the catalog.")
console = Console()


@dataclass
class CliOptions:
    config: Optional[Path] = None
    kind: ArtifactKind = ArtifactKind.LESSON
    count: Optional[int] = None
    as_json: bool = False


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        show_default=False,
        help="Generator YAML (defaults to config/generation.yaml under the repo root).",
    ),
    kind: ArtifactKind = typer.Option(ArtifactKind.LESSON, "--kind", case_sensitive=False, help="Artifact to generate."),
    count: Optional[int] = typer.Option(
        None,
        "--count",
        min=1,
        max=100,
        show_default=False,
        help="Practice questions per subtopic (practice kind only).",
    ),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON instead of tables and live log lines."),
) -> None:
    ctx.obj = CliOptions(config=config, kind=kind, count=count, as_json=as_json)


def _options(ctx: typer.Context) -> CliOptions:
    return ctx.obj if isinstance(ctx.obj, CliOptions) else CliOptions()


def _print_entry(topic_id: str, entry: LogEntry) -> None:
    style = KIND_STYLES.get(entry.kind, "")
    console.print(Text(f"{topic_id}  ", style="bold") + Text(entry.message, style=style))


def _bootstrap(options: CliOptions, *, live: bool = False) -> GenerationContext:
    config_path = options.config.expanduser().resolve() if options.config else None
    try:
        return bootstrap_generation(
            config_path,
            repo_root=_resolve_repo_root(),
            kind=options.kind,
            question_count=options.count,
            configure_root_logger=not options.as_json,
            on_entry=_print_entry if live and not options.as_json else None,
        )
    except (ValueError, FileNotFoundError) as exc:
        raise typer.BadParameter(str(exc)) from exc


def _fail(message: str) -> None:
    console.print(f"[red]{message}[/red]")
    raise typer.Exit(code=1)


def _emit_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


def _outcome_dict(outcome: TopicOutcome) -> Dict[str, Any]:
    return {
        "topic_id": outcome.topic_id,
        "ok": outcome.ok,
        "skipped": outcome.skipped,
        "failed": outcome.failed,
        "inserted": outcome.inserted,
        "stopped": outcome.stopped,
    }


def _drive(session: GenerationContext, action: Callable[[], Awaitable[Any]]) -> Any:
    """Run ``action`` on a fresh loop; Ctrl-C asks the controller to stop at the next boundary."""

    async def _runner() -> Any:
        loop = asyncio.get_running_loop()
        handler_installed = False
        try:
            loop.add_signal_handler(signal.SIGINT, _request_stop, session)
            handler_installed = True
        except (NotImplementedError, RuntimeError):
            session.controller.logger.debug("SIGINT handler unavailable on this event loop")
        try:
            return await action()
        finally:
            if handler_installed:
                loop.remove_signal_handler(signal.SIGINT)
            await session.aclose()

    try:
        return asyncio.run(_runner())
    except LessonForgeError as exc:
        _fail(str(exc))


def _request_stop(session: GenerationContext) -> None:
    if session.controller.stop():
        console.print("[yellow]Stop requested; finishing the request in flight…[/yellow]")


@app.command()
def paths(ctx: typer.Context) -> None:
    """List active learning paths in sort order."""

    options = _options(ctx)
    session = _bootstrap(options)
    rows = [path.model_dump() for path in session.store.list_learning_paths()]
    if options.as_json:
        _emit_json(rows)
        return
    table = Table("ID", "Name", "Sort")
    for row in rows:
        table.add_row(str(row["id"]), row["name"], str(row["sort_order"]))
    console.print(table)


@app.command()
def status(ctx: typer.Context, path_id: str = typer.Argument(..., help="Learning path id.")) -> None:
    """Show done/total subtopics per topic for a learning path."""

    options = _options(ctx)
    session = _bootstrap(options)
    aggregator = session.controller.aggregator
    try:
        topics = aggregator.load_topics(path_id)
        rows: List[Dict[str, Any]] = []
        for topic in topics:
            completion = aggregator.topic_completion(topic)
            rows.append({"topic_id": topic.id, "name": topic.name, **completion.to_dict(), "complete": completion.is_complete})
        question_total = aggregator.practice_question_total(topics) if options.kind is ArtifactKind.PRACTICE else None
    except LessonForgeError as exc:
        _fail(str(exc))
        return

    done = sum(row["done"] for row in rows)
    total = sum(row["total"] for row in rows)
    if options.as_json:
        payload: Dict[str, Any] = {"learning_path_id": path_id, "kind": options.kind.value, "done": done, "total": total, "topics": rows}
        if question_total is not None:
            payload["practice_questions"] = question_total
        _emit_json(payload)
        return

    table = Table("Topic", "Name", "Done", "Total", "")
    for row in rows:
        marker = "[green]✓[/green]" if row["complete"] else ""
        table.add_row(str(row["topic_id"]), row["name"], str(row["done"]), str(row["total"]), marker)
    console.print(table)
    console.print(f"[bold]{options.kind.value}:[/bold] {done}/{total} subtopics done")
    if question_total is not None:
        console.print(f"[dim]{question_total} extended practice questions in this path[/dim]")


@app.command()
def topic(ctx: typer.Context, topic_id: str = typer.Argument(..., help="Topic id to generate.")) -> None:
    """Generate every missing artifact for one topic."""

    options = _options(ctx)
    session = _bootstrap(options, live=True)
    outcome = _drive(session, lambda: session.controller.run_topic(topic_id))
    _report_topic(options, outcome)


@app.command(name="all")
def all_topics(ctx: typer.Context, path_id: str = typer.Argument(..., help="Learning path id.")) -> None:
    """Generate across every topic of a learning path, skipping finished topics."""

    options = _options(ctx)
    session = _bootstrap(options, live=True)
    summary = _drive(session, lambda: session.controller.run_all(path_id))
    if summary is None:
        _fail("Another run is already active.")
        return
    if options.as_json:
        _emit_json(
            {
                "learning_path_id": summary.learning_path_id,
                "stopped": summary.stopped,
                "skipped_topic_ids": summary.skipped_topic_ids,
                "topics": [_outcome_dict(outcome) for outcome in summary.outcomes],
            }
        )
        return
    console.print(
        f"[bold]{len(summary.outcomes)} topics run, {len(summary.skipped_topic_ids)} already complete[/bold] "
        f"({summary.ok} generated, {summary.failed} failed)"
    )
    if summary.stopped:
        console.print("[yellow]Run stopped before finishing the path.[/yellow]")


@app.command()
def force(
    ctx: typer.Context,
    topic_id: str = typer.Argument(..., help="Topic id to rebuild."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Delete a topic's artifacts, then regenerate all of them."""

    options = _options(ctx)
    if not yes:
        typer.confirm(f"Delete every {options.kind.value} artifact for topic {topic_id} and regenerate?", abort=True)
    session = _bootstrap(options, live=True)
    outcome = _drive(session, lambda: session.controller.force_regenerate(topic_id))
    _report_topic(options, outcome)


@app.command()
def purge(
    ctx: typer.Context,
    topic_id: str = typer.Argument(..., help="Topic id whose artifacts are deleted."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Delete a topic's artifacts without regenerating."""

    options = _options(ctx)
    if not yes:
        typer.confirm(f"Delete every {options.kind.value} artifact for topic {topic_id}?", abort=True)
    session = _bootstrap(options, live=True)
    deleted = _drive(session, lambda: session.controller.delete_artifacts(topic_id))
    if options.as_json:
        _emit_json({"topic_id": topic_id, "kind": options.kind.value, "deleted": deleted})
        return
    console.print(f"[bold]Deleted {deleted} rows.[/bold]")


def _report_topic(options: CliOptions, outcome: TopicOutcome | None) -> None:
    if outcome is None:
        _fail("Topic is already running.")
        return
    if options.as_json:
        _emit_json(_outcome_dict(outcome))


if __name__ == "__main__":  # pragma: no cover
    app()
