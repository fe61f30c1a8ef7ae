from __future__ import annotations

import sys
from functools import partial

import typer
from rich import print

from . import __version__
from .commands.common import open_mind
from .commands.diagnostics_cmds import diagnostics_cmd
from .commands.memory_cmds import ask_cmd, recent_cmd, remember_cmd, search_cmd, stats_cmd
from .config import load_config, resolve_project_dir
from .hooks import configure_logging, run_hook
from .hooks.post_tool_use import handle_post_tool_use
from .hooks.session_start import build_session_start_output
from .hooks.stop import handle_stop

app = typer.Typer(help="agent-brain: project memory for coding agents")
hook_app = typer.Typer(help="Host hook entry points (read JSON on stdin)")
app.add_typer(hook_app, name="hook")

PROJECT_OPTION_HELP = "Project directory (defaults to the host project or cwd)"
PLATFORM_OPTION_HELP = "Host platform (defaults to detection from the environment)"


@app.callback()
def _root(
    debug: bool = typer.Option(False, "--debug", help="Log debug output to stderr"),
) -> None:
    configure_logging(debug or load_config().debug)


@app.command()
def search(
    query: str,
    limit: int = typer.Option(10, help="Max results"),
    as_json: bool = typer.Option(False, "--json", help="Print results as JSON"),
    project_dir: str = typer.Option(None, "--project-dir", help=PROJECT_OPTION_HELP),
    platform: str = typer.Option(None, help=PLATFORM_OPTION_HELP),
) -> None:
    """Search memories by keyword."""
    search_cmd(
        mind_factory=partial(open_mind, project_dir, platform),
        query=query,
        limit=limit,
        as_json=as_json,
    )


@app.command()
def ask(
    question: str,
    project_dir: str = typer.Option(None, "--project-dir", help=PROJECT_OPTION_HELP),
    platform: str = typer.Option(None, help=PLATFORM_OPTION_HELP),
) -> None:
    """Ask your memory a question."""
    ask_cmd(mind_factory=partial(open_mind, project_dir, platform), question=question)


@app.command()
def recent(
    limit: int = typer.Option(20, help="Max observations"),
    project_dir: str = typer.Option(None, "--project-dir", help=PROJECT_OPTION_HELP),
    platform: str = typer.Option(None, help=PLATFORM_OPTION_HELP),
) -> None:
    """Show recent observations and session summaries."""
    recent_cmd(mind_factory=partial(open_mind, project_dir, platform), limit=limit)


@app.command()
def stats(
    project_dir: str = typer.Option(None, "--project-dir", help=PROJECT_OPTION_HELP),
    platform: str = typer.Option(None, help=PLATFORM_OPTION_HELP),
) -> None:
    """Show memory statistics."""
    stats_cmd(mind_factory=partial(open_mind, project_dir, platform))


@app.command()
def remember(
    observation_type: str = typer.Argument(..., metavar="TYPE"),
    summary: str = typer.Argument(...),
    content: str = typer.Argument(...),
    tool: str = typer.Option(None, help="Tool that produced the observation"),
    project_dir: str = typer.Option(None, "--project-dir", help=PROJECT_OPTION_HELP),
    platform: str = typer.Option(None, help=PLATFORM_OPTION_HELP),
) -> None:
    """Manually add an observation."""
    remember_cmd(
        mind_factory=partial(open_mind, project_dir, platform),
        observation_type=observation_type,
        summary=summary,
        content=content,
        tool=tool,
    )


@app.command()
def diagnostics(
    as_json: bool = typer.Option(False, "--json", help="Print records as JSON"),
    project_dir: str = typer.Option(None, "--project-dir", help=PROJECT_OPTION_HELP),
) -> None:
    """List adapter diagnostics recorded for this project."""
    diagnostics_cmd(project_dir=resolve_project_dir(project_dir), as_json=as_json)


@hook_app.command("session-start")
def hook_session_start() -> None:
    """Validate a session start event and print the context banner."""
    run_hook(build_session_start_output, sys.stdin, sys.stdout)


@hook_app.command("post-tool-use")
def hook_post_tool_use() -> None:
    """Capture a tool call as an observation."""
    run_hook(handle_post_tool_use, sys.stdin, sys.stdout)


@hook_app.command("stop")
def hook_stop() -> None:
    """Write the session summary."""
    run_hook(handle_stop, sys.stdin, sys.stdout)


@app.command("version")
def version() -> None:
    """Print version."""

    print(__version__)


def main() -> None:
    app()
