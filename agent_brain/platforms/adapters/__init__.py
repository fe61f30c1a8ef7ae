from __future__ import annotations

from .base import CONTRACT_VERSION, HookAdapter, create_adapter
from .claude import claude_adapter
from .opencode import OpenCodeAdapter, opencode_adapter, to_canonical_tool_name

__all__ = [
    "CONTRACT_VERSION",
    "HookAdapter",
    "OpenCodeAdapter",
    "claude_adapter",
    "create_adapter",
    "opencode_adapter",
    "to_canonical_tool_name",
]
