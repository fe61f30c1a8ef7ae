import json
from pathlib import Path

from typer.testing import CliRunner

from agent_brain import __version__
from agent_brain.cli import app
from agent_brain.platforms import DiagnosticStore, resolve_diagnostic_path
from agent_brain.platforms.diagnostics import create_redacted_diagnostic

runner = CliRunner()


def _invoke(project_dir: Path, *args: str, **kwargs):
    return runner.invoke(app, [*args, "--project-dir", str(project_dir)], **kwargs)


def test_root_help_lists_commands() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for command in ("search", "ask", "recent", "stats", "remember", "diagnostics", "hook"):
        assert command in result.stdout


def test_hook_help_lists_entry_points() -> None:
    result = runner.invoke(app, ["hook", "--help"])
    assert result.exit_code == 0
    assert "session-start" in result.stdout
    assert "post-tool-use" in result.stdout
    assert "stop" in result.stdout


def test_version() -> None:
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_remember_then_search(project_dir: Path) -> None:
    stored = _invoke(
        project_dir,
        "remember",
        "decision",
        "Adopt FTS5",
        "Lexical search uses sqlite FTS5",
        "--tool",
        "Edit",
    )
    assert stored.exit_code == 0, stored.stdout
    assert "Stored memory" in stored.stdout

    found = _invoke(project_dir, "search", "lexical", "--json")
    assert found.exit_code == 0, found.stdout
    payload = json.loads(found.stdout)
    assert len(payload) == 1
    assert payload[0]["type"] == "decision"
    assert payload[0]["tool"] == "Edit"
    assert payload[0]["summary"] == "Adopt FTS5"

    rendered = _invoke(project_dir, "search", "lexical")
    assert "Adopt FTS5" in rendered.stdout


def test_search_without_results(project_dir: Path) -> None:
    result = _invoke(project_dir, "search", "nothing")
    assert result.exit_code == 0
    assert "No memories found." in result.stdout


def test_remember_rejects_unknown_type(project_dir: Path) -> None:
    result = _invoke(project_dir, "remember", "musing", "summary", "content")
    assert result.exit_code == 1
    assert "Invalid observation type" in result.stdout
    assert not (project_dir / ".agent-brain" / "mind.sqlite").exists()


def test_ask_recent_and_stats(project_dir: Path) -> None:
    _invoke(project_dir, "remember", "discovery", "Cache layer", "Redis caches lookups")

    answer = _invoke(project_dir, "ask", "redis")
    assert answer.exit_code == 0
    assert "Cache layer" in answer.stdout

    recent = _invoke(project_dir, "recent", "--limit", "5")
    assert recent.exit_code == 0
    assert "Cache layer" in recent.stdout

    stats = _invoke(project_dir, "stats")
    assert stats.exit_code == 0
    assert "Observations: 1" in stats.stdout
    assert "discovery: 1" in stats.stdout


def test_ask_without_memories(project_dir: Path) -> None:
    result = _invoke(project_dir, "ask", "anything")
    assert result.exit_code == 0
    assert "No relevant memories found." in result.stdout


def test_invalid_memory_path_exits_with_error(project_dir: Path, monkeypatch) -> None:
    monkeypatch.setenv("AGENT_BRAIN_MEMORY_PATH", "../outside.sqlite")
    result = _invoke(project_dir, "stats")
    assert result.exit_code == 1
    assert "Could not open memory" in result.stdout


def test_diagnostics_listing(project_dir: Path) -> None:
    empty = _invoke(project_dir, "diagnostics")
    assert empty.exit_code == 0
    assert "No diagnostics recorded." in empty.stdout

    create_redacted_diagnostic(
        platform="cursor",
        error_type="unsupported_platform",
        field_names=["platform"],
        store=DiagnosticStore(resolve_diagnostic_path(project_dir)),
    )

    listed = _invoke(project_dir, "diagnostics")
    assert "unsupported_platform" in listed.stdout
    records = json.loads(_invoke(project_dir, "diagnostics", "--json").stdout)
    assert [record["platform"] for record in records] == ["cursor"]
    assert records[0]["redacted"] is True


def test_hook_commands_read_stdin(project_dir: Path) -> None:
    event = {
        "session_id": "cli-session",
        "cwd": str(project_dir),
        "tool_name": "Bash",
        "tool_input": {"command": "make build"},
        "tool_response": "building targets...\n" * 5 + "build completed",
    }
    captured = runner.invoke(app, ["hook", "post-tool-use"], input=json.dumps(event))
    assert captured.exit_code == 0
    assert json.loads(captured.stdout) == {"continue": True}

    started = runner.invoke(
        app,
        ["hook", "session-start"],
        input=json.dumps({"session_id": "next", "cwd": str(project_dir)}),
    )
    output = json.loads(started.stdout)
    assert output["continue"] is True
    assert "Ran: make build" in output["hookSpecificOutput"]["additionalContext"]

    stopped = runner.invoke(app, ["hook", "stop"], input="not json")
    assert json.loads(stopped.stdout) == {"continue": True}
