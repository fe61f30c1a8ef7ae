from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .compression import CompressionResult, compress_tool_output
from .observation_types import ObservationType
from .redaction import sanitize_tool_output

logger = logging.getLogger(__name__)

OBSERVED_TOOLS = frozenset(
    {
        "Read",
        "Edit",
        "Write",
        "Update",
        "Bash",
        "Grep",
        "Glob",
        "WebFetch",
        "WebSearch",
        "Task",
        "NotebookEdit",
    }
)
ALWAYS_CAPTURE_TOOLS = frozenset({"Edit", "Write", "Update", "NotebookEdit"})
FILE_TOOLS = frozenset({"Read", "Edit", "Write", "Update", "NotebookEdit"})

MIN_OUTPUT_LENGTH = 50
MAX_OUTPUT_LENGTH = 2500
DEDUP_WINDOW_MS = 60_000
DEDUP_INPUT_CHARS = 200

# Outputs that already carry injected memory must not be fed back in.
CONTEXT_MARKERS = ("<system-reminder>", "<agent-brain-context>", "<memvid-mind-context>")


@dataclass(frozen=True)
class CapturedObservation:
    observation_type: ObservationType
    summary: str
    content: str
    tool: str
    metadata: dict[str, Any] = field(default_factory=dict)


def observation_key(tool_name: str, tool_input: Mapping[str, Any] | None) -> str:
    rendered = json.dumps(tool_input, ensure_ascii=False, default=str) if tool_input else ""
    return f"{tool_name}:{rendered[:DEDUP_INPUT_CHARS]}"


def render_tool_response(response: Any) -> str:
    if response is None:
        return ""
    if isinstance(response, str):
        return response
    return json.dumps(response, ensure_ascii=False, indent=2, default=str)


def _file_path(tool_input: Mapping[str, Any]) -> str | None:
    value = (
        tool_input.get("file_path")
        or tool_input.get("filePath")
        or tool_input.get("notebook_path")
    )
    return str(value) if value else None


def _file_name(tool_input: Mapping[str, Any]) -> str:
    path = _file_path(tool_input)
    return path.rsplit("/", 1)[-1] if path else "file"


def classify_observation_type(tool_name: str, output: str) -> ObservationType:
    lowered = output.lower()
    if any(word in lowered for word in ("error", "failed", "exception")):
        return "problem"
    if any(word in lowered for word in ("success", "passed", "completed")):
        return "success"
    if "warning" in lowered or "deprecated" in lowered:
        return "warning"
    if tool_name == "Edit":
        return "bugfix" if ("fix" in lowered or "bug" in lowered) else "refactor"
    if tool_name == "Write":
        return "feature"
    return "discovery"


def summarize_tool(tool_name: str, tool_input: Mapping[str, Any], output: str) -> str:
    if tool_name == "Read":
        line_count = len(output.split("\n"))
        return f"Read {_file_name(tool_input)} ({line_count} lines)"
    if tool_name in {"Edit", "Update"}:
        return f"Edited {_file_name(tool_input)}"
    if tool_name == "Write":
        return f"Created {_file_name(tool_input)}"
    if tool_name == "Bash":
        command = str(tool_input.get("command") or "command").split("\n", 1)[0][:50]
        lowered = output.lower()
        if "error" in lowered or "failed" in lowered:
            return f"Command failed: {command}"
        return f"Ran: {command}"
    if tool_name in {"Grep", "Glob"}:
        pattern = str(tool_input.get("pattern") or "")[:30]
        matches = len([line for line in output.split("\n") if line])
        noun = "matches for" if tool_name == "Grep" else "files matching"
        return f'Found {matches} {noun} "{pattern}"'
    if tool_name in {"WebFetch", "WebSearch"}:
        target = str(tool_input.get("url") or tool_input.get("query") or "")[:50]
        return f"Fetched: {target}"
    return f"{tool_name} completed"


def extract_metadata(
    tool_name: str,
    tool_input: Mapping[str, Any] | None,
    *,
    platform: str,
    project_identity_key: str,
) -> dict[str, Any]:
    metadata: dict[str, Any] = {
        "platform": platform,
        "project_identity_key": project_identity_key,
    }
    if not tool_input:
        return metadata
    if tool_name in FILE_TOOLS:
        path = _file_path(tool_input)
        if path:
            metadata["files"] = [path]
    elif tool_name == "Bash" and tool_input.get("command"):
        metadata["command"] = str(tool_input["command"])[:200]
    elif tool_name in {"Grep", "Glob"}:
        if tool_input.get("pattern"):
            metadata["pattern"] = tool_input["pattern"]
        if tool_input.get("path"):
            metadata["search_path"] = tool_input["path"]
    return metadata


def build_observation(
    tool_name: str,
    tool_input: Mapping[str, Any] | None,
    tool_response: Any,
    *,
    platform: str,
    project_identity_key: str,
    auto_compress: bool = True,
) -> CapturedObservation | None:
    """Turn one tool call into an observation, or None when it is not worth keeping."""

    if tool_name not in OBSERVED_TOOLS:
        return None
    inputs = tool_input or {}
    output = render_tool_response(tool_response)
    always_capture = tool_name in ALWAYS_CAPTURE_TOOLS
    if not always_capture and len(output) < MIN_OUTPUT_LENGTH:
        return None
    if always_capture and len(output) < MIN_OUTPUT_LENGTH:
        path = _file_path(inputs) or "unknown file"
        output = f"File modified: {_file_name(inputs)}\nPath: {path}\nTool: {tool_name}"
    if any(marker in output for marker in CONTEXT_MARKERS):
        logger.debug("skipping %s output that carries injected context", tool_name)
        return None

    cleaned = sanitize_tool_output(output)
    if auto_compress:
        compressed = compress_tool_output(tool_name, inputs, cleaned)
    else:
        compressed = CompressionResult(
            text=cleaned, was_compressed=False, original_size=len(cleaned)
        )
    content = compressed.text
    if len(content) > MAX_OUTPUT_LENGTH:
        suffix = ", compressed" if compressed.was_compressed else ""
        content = f"{content[:MAX_OUTPUT_LENGTH]}\n... (truncated{suffix})"

    metadata = extract_metadata(
        tool_name, inputs, platform=platform, project_identity_key=project_identity_key
    )
    if compressed.was_compressed:
        metadata["compressed"] = True
        metadata["original_size"] = compressed.original_size
        metadata["compressed_size"] = len(compressed.text)
        logger.debug("compressed %s output by %s%%", tool_name, compressed.saved_percent)

    return CapturedObservation(
        observation_type=classify_observation_type(tool_name, compressed.text),
        summary=summarize_tool(tool_name, inputs, cleaned),
        content=content,
        tool=tool_name,
        metadata=metadata,
    )
