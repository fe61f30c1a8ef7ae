"""Post tool use hook: capture one tool call as an observation."""

from __future__ import annotations

import logging
import sys

from ..capture import build_observation, observation_key
from ..platforms import detect_platform, process_platform_event
from ..platforms.events import ToolObservationPayload
from ..platforms.pipeline import skip_with_diagnostic
from ..runtime import RuntimeContext
from ..types import HookInput, HookOutput
from ..utils import now_ms
from ._io import run_hook

logger = logging.getLogger(__name__)


def capture_tool_observation(hook_input: HookInput, runtime: RuntimeContext) -> str | None:
    """Store the observation for one tool call; returns the frame id when stored."""

    platform = detect_platform(hook_input)
    adapter = runtime.registry.resolve(platform)
    if adapter is None:
        skip_with_diagnostic(
            platform, "unsupported_platform", ["platform"], diagnostics=runtime.diagnostics
        )
        return None

    event = adapter.normalize_tool_observation(hook_input)
    if event is None:
        return None
    result = process_platform_event(event, diagnostics=runtime.diagnostics)
    if result.skipped:
        logger.debug("skipping tool event: %s", result.reason)
        return None

    payload = event.payload
    if not isinstance(payload, ToolObservationPayload) or not payload.tool_name:
        return None

    call_key = f"{event.session_id}:{payload.tool_use_id}" if payload.tool_use_id else None
    if call_key and call_key in runtime.processed_tool_calls:
        return None

    dedup_key = observation_key(payload.tool_name, payload.tool_input)
    current = now_ms()
    if runtime.recent_observations.seen_within_window(dedup_key, current):
        logger.debug("skipping duplicate observation: %s", payload.tool_name)
        return None

    captured = build_observation(
        payload.tool_name,
        payload.tool_input,
        payload.tool_response,
        platform=platform,
        project_identity_key=result.project_identity_key,
        auto_compress=runtime.config.auto_compress,
    )
    if captured is None:
        return None

    mind = runtime.get_mind(platform, event.session_id or None)
    frame_id = mind.remember(
        captured.observation_type,
        captured.summary,
        captured.content,
        tool=captured.tool,
        metadata=captured.metadata,
    )
    runtime.recent_observations.mark(dedup_key, current)
    if call_key:
        runtime.processed_tool_calls.add(call_key)
    return frame_id


def handle_post_tool_use(hook_input: HookInput, runtime: RuntimeContext) -> HookOutput:
    capture_tool_observation(hook_input, runtime)
    return {"continue": True}


def main() -> None:
    run_hook(handle_post_tool_use, sys.stdin, sys.stdout)


if __name__ == "__main__":
    main()
