"""Stop hook: write a summary record for the session that just ended."""

from __future__ import annotations

import logging
import sys
from collections import Counter
from collections.abc import Sequence

from ..platforms import detect_platform, process_platform_event
from ..runtime import RuntimeContext
from ..types import HookInput, HookOutput, Observation
from ._io import run_hook

logger = logging.getLogger(__name__)

DECISION_TYPES = frozenset({"decision", "bugfix", "feature", "solution", "refactor"})
MODIFYING_TOOLS = frozenset({"Edit", "Write", "Update", "NotebookEdit"})


def summarize_session(
    observations: Sequence[Observation],
) -> tuple[list[str], list[str], str]:
    """Key decisions, modified files and a one-line digest for a session."""

    key_decisions = [obs.summary for obs in observations if obs.type in DECISION_TYPES]
    files: list[str] = []
    for obs in observations:
        if obs.tool not in MODIFYING_TOOLS:
            continue
        for path in obs.metadata.get("files") or []:
            if isinstance(path, str) and path not in files:
                files.append(path)
    counts = Counter(obs.type for obs in observations)
    breakdown = ", ".join(f"{count} {kind}" for kind, count in counts.most_common())
    summary = f"Session with {len(observations)} observations ({breakdown})"
    if files:
        summary += f"; modified {len(files)} files"
    return key_decisions, files, summary


def save_session_summary(hook_input: HookInput, runtime: RuntimeContext) -> str | None:
    platform = detect_platform(hook_input)
    adapter = runtime.registry.resolve(platform)
    if adapter is None:
        return None
    event = adapter.normalize_session_stop(hook_input)
    result = process_platform_event(event, diagnostics=runtime.diagnostics)
    if result.skipped:
        logger.debug("skipping session stop: %s", result.reason)
        return None
    if not event.session_id:
        return None

    mind = runtime.get_mind(platform, event.session_id)
    observations = mind.session_observations(event.session_id)
    if not observations:
        return None
    key_decisions, files, summary = summarize_session(observations)
    timestamps = [obs.timestamp for obs in observations if obs.timestamp > 0]
    return mind.save_session_summary(
        key_decisions,
        files,
        summary,
        observation_count=len(observations),
        start_time=min(timestamps) if timestamps else None,
    )


def handle_stop(hook_input: HookInput, runtime: RuntimeContext) -> HookOutput:
    save_session_summary(hook_input, runtime)
    return {"continue": True}


def main() -> None:
    run_hook(handle_stop, sys.stdin, sys.stdout)


if __name__ == "__main__":
    main()
