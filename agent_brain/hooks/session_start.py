"""Session start hook: validate the host event and inject a memory banner."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from ..platforms import build_migration_command, detect_platform, process_platform_event
from ..platforms.path_policy import (
    MemoryPathError,
    MemoryPathPolicyResult,
    display_path,
    policy_input_from_config,
    resolve_memory_path_policy,
)
from ..platforms.pipeline import skip_with_diagnostic
from ..runtime import RuntimeContext
from ..types import HookInput, HookOutput, InjectedContext
from ..utils import format_timestamp
from ._io import run_hook

logger = logging.getLogger(__name__)

CONTEXT_OPEN = "<agent-brain-context>"
CONTEXT_CLOSE = "</agent-brain-context>"
MAX_HIGHLIGHTS = 5


def _display_name(platform: str) -> str:
    return platform[:1].upper() + platform[1:]


def build_context_lines(
    *,
    project_name: str,
    platform: str,
    memory_display_path: str,
    memory_exists: bool,
    file_size_kb: int,
    warning: str | None = None,
    migration_command: str | None = None,
    context: InjectedContext | None = None,
) -> list[str]:
    lines = [CONTEXT_OPEN]
    state = "Active" if memory_exists else "Ready"
    lines.append(f"# {_display_name(platform)} Agent Brain {state}")
    lines.append("")
    lines.append(f"Project: **{project_name}**")
    lines.append(f"Platform: **{platform}**")
    if memory_exists:
        lines.append(f"Memory: `{memory_display_path}` ({file_size_kb} KB)")
    else:
        lines.append(f"Memory will be created at: `{memory_display_path}`")

    if warning:
        lines.extend(["", f"Warning: {warning}"])

    if migration_command:
        lines.extend(
            [
                "",
                "Legacy memory detected.",
                f"Move it to the platform-specific path? Run: `{migration_command}`",
            ]
        )

    if context and context.recent_observations:
        lines.extend(["", "**Recent memories:**"])
        for observation in context.recent_observations[:MAX_HIGHLIGHTS]:
            when = format_timestamp(observation.timestamp)
            lines.append(f"- [{observation.type}] {observation.summary} ({when})")
    if context and context.session_summaries:
        lines.extend(["", "**Recent sessions:**"])
        for summary in context.session_summaries:
            lines.append(f"- {summary.summary} ({summary.observation_count} observations)")

    lines.extend(
        [
            "",
            "**Commands:**",
            "- `agent-brain search <query>` - Search memories",
            "- `agent-brain ask <question>` - Ask your memory",
            "- `agent-brain recent` - View timeline",
            "- `agent-brain stats` - View statistics",
            "",
            "_Memories are captured automatically from your tool use._",
            CONTEXT_CLOSE,
        ]
    )
    return lines


def _resolve_policy(runtime: RuntimeContext, platform: str) -> MemoryPathPolicyResult:
    config = runtime.config
    return resolve_memory_path_policy(
        policy_input_from_config(
            runtime.project_dir,
            platform,
            memory_path=config.memory_path,
            platform_opt_in=config.platform_path_opt_in,
            platform_memory_path=config.platform_memory_path,
        )
    )


def _load_context(
    runtime: RuntimeContext, platform: str, session_id: str | None
) -> InjectedContext | None:
    try:
        return runtime.get_mind(platform, session_id).get_context()
    except Exception as exc:  # noqa: BLE001
        logger.debug("could not load recent memories", exc_info=exc)
        return None


def build_session_start_output(hook_input: HookInput, runtime: RuntimeContext) -> HookOutput:
    project_dir = runtime.project_dir
    platform = detect_platform(hook_input)
    session_id = hook_input.get("session_id") or None

    warning: str | None = None
    accepted = False
    adapter = runtime.registry.resolve(platform)
    if adapter is None:
        skip_with_diagnostic(
            platform, "unsupported_platform", ["platform"], diagnostics=runtime.diagnostics
        )
        warning = "Unsupported platform detected: memory capture disabled for this session."
    else:
        result = process_platform_event(
            adapter.normalize_session_start(hook_input), diagnostics=runtime.diagnostics
        )
        if result.skipped:
            warning = f"Memory capture disabled for this session ({result.reason})."
        else:
            accepted = True

    try:
        policy = _resolve_policy(runtime, platform)
    except MemoryPathError as exc:
        return {
            "continue": True,
            "hookSpecificOutput": {
                "hookEventName": "SessionStart",
                "additionalContext": "\n".join(
                    [CONTEXT_OPEN, f"Warning: memory disabled: {exc}", CONTEXT_CLOSE]
                ),
            },
        }

    memory_path: Path = policy.memory_path
    memory_exists = memory_path.exists()
    file_size_kb = round(memory_path.stat().st_size / 1024) if memory_exists else 0
    migration_command = (
        build_migration_command(project_dir, policy.migration_suggestion)
        if policy.migration_suggestion
        else None
    )
    # Highlights are injected once per session.
    context = None
    if accepted and memory_exists and session_id not in runtime.introduced_sessions:
        context = _load_context(runtime, platform, session_id)
    if accepted and session_id:
        runtime.introduced_sessions.add(session_id)

    lines = build_context_lines(
        project_name=Path(project_dir).resolve().name or str(project_dir),
        platform=platform,
        memory_display_path=display_path(project_dir, memory_path),
        memory_exists=memory_exists,
        file_size_kb=file_size_kb,
        warning=warning,
        migration_command=migration_command,
        context=context,
    )
    return {
        "continue": True,
        "hookSpecificOutput": {
            "hookEventName": "SessionStart",
            "additionalContext": "\n".join(lines),
        },
    }


def main() -> None:
    run_hook(build_session_start_output, sys.stdin, sys.stdout)


if __name__ == "__main__":
    main()
