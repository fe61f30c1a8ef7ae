from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .base import HookAdapter

# OpenCode reports lowercase tool ids; observations use the canonical names.
TOOL_NAME_MAP = {
    "read": "Read",
    "edit": "Edit",
    "write": "Write",
    "update": "Update",
    "apply_patch": "Update",
    "bash": "Bash",
    "grep": "Grep",
    "glob": "Glob",
    "webfetch": "WebFetch",
    "task": "Task",
}


def to_canonical_tool_name(tool_id: str) -> str | None:
    return TOOL_NAME_MAP.get(tool_id.strip().lower())


class OpenCodeAdapter(HookAdapter):
    def __init__(self) -> None:
        super().__init__("opencode")

    def tool_name(self, hook_input: Mapping[str, Any]) -> str | None:
        raw = super().tool_name(hook_input)
        if raw is None:
            return None
        # Names that are already canonical (or unknown to the map) pass through.
        return to_canonical_tool_name(raw) or raw


opencode_adapter = OpenCodeAdapter()
