from __future__ import annotations

from .base import create_adapter

claude_adapter = create_adapter("claude")
