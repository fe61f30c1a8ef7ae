from __future__ import annotations

import json

import typer
from rich import print
from rich.markup import escape

from ..observation_types import validate_observation_type
from ..utils import format_bytes, format_timestamp
from .common import MindFactory, mind_or_exit


def search_cmd(*, mind_factory: MindFactory, query: str, limit: int, as_json: bool) -> None:
    """Search memories by keyword."""

    with mind_or_exit(mind_factory) as mind:
        results = mind.search(query, limit=limit)
    if as_json:
        payload = [
            {
                "id": result.observation.id,
                "type": result.observation.type,
                "tool": result.observation.tool,
                "summary": result.observation.summary,
                "timestamp": result.observation.timestamp,
                "score": result.score,
                "snippet": result.snippet,
            }
            for result in results
        ]
        typer.echo(json.dumps(payload, indent=2))
        return
    if not results:
        print("No memories found.")
        return
    for result in results:
        observation = result.observation
        tool = f" {observation.tool}" if observation.tool else ""
        print(
            f"[bold]\\[{observation.type}]{escape(tool)}[/bold] {escape(observation.summary)} "
            f"[dim]({format_timestamp(observation.timestamp)}, score={result.score:.2f})[/dim]"
        )
        if result.snippet:
            print(f"  {escape(result.snippet)}")


def ask_cmd(*, mind_factory: MindFactory, question: str) -> None:
    """Ask the memory a question."""

    with mind_or_exit(mind_factory) as mind:
        answer = mind.ask(question)
    print(escape(answer))


def recent_cmd(*, mind_factory: MindFactory, limit: int) -> None:
    """Show the most recent observations."""

    with mind_or_exit(mind_factory) as mind:
        mind.config.max_context_observations = limit
        context = mind.get_context()
    if not context.recent_observations:
        print("No memories yet.")
        return
    for observation in context.recent_observations:
        print(
            f"[bold]\\[{observation.type}][/bold] {escape(observation.summary)} "
            f"[dim]({format_timestamp(observation.timestamp)})[/dim]"
        )
    if context.session_summaries:
        print("\n[bold]Sessions[/bold]")
        for summary in context.session_summaries:
            print(f"- {escape(summary.summary)} ({summary.observation_count} observations)")


def stats_cmd(*, mind_factory: MindFactory) -> None:
    """Show memory statistics."""

    with mind_or_exit(mind_factory) as mind:
        stats = mind.stats()
        memory_path = mind.memory_path

    print("[bold]Memory[/bold]")
    print(f"- Path: {memory_path}")
    print(f"- Size: {format_bytes(stats.file_size)}")
    print(f"- Observations: {stats.total_observations}")
    print(f"- Sessions: {stats.total_sessions}")
    print(f"- Oldest: {format_timestamp(stats.oldest_memory)}")
    print(f"- Newest: {format_timestamp(stats.newest_memory)}")
    used = {kind: count for kind, count in stats.top_types.items() if count}
    if used:
        print("\n[bold]Types[/bold]")
        for kind, count in sorted(used.items(), key=lambda item: -item[1]):
            print(f"- {kind}: {count}")


def remember_cmd(
    *,
    mind_factory: MindFactory,
    observation_type: str,
    summary: str,
    content: str,
    tool: str | None,
) -> None:
    """Manually add an observation."""

    try:
        kind = validate_observation_type(observation_type)
    except ValueError as exc:
        print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc
    with mind_or_exit(mind_factory) as mind:
        frame_id = mind.remember(kind, summary, content, tool=tool)
    print(f"Stored memory {frame_id}")
