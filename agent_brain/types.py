from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, TypedDict

from .observation_types import ObservationType


@dataclass
class Observation:
    id: str
    timestamp: int
    type: ObservationType
    summary: str
    content: str
    tool: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class SessionSummary:
    id: str
    start_time: int
    end_time: int
    observation_count: int
    key_decisions: list[str]
    files_modified: list[str]
    summary: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "observation_count": self.observation_count,
            "key_decisions": list(self.key_decisions),
            "files_modified": list(self.files_modified),
            "summary": self.summary,
        }


@dataclass
class MemorySearchResult:
    observation: Observation
    score: float
    snippet: str


@dataclass
class InjectedContext:
    recent_observations: list[Observation]
    relevant_memories: list[Observation]
    session_summaries: list[SessionSummary]
    token_count: int


@dataclass
class MindStats:
    total_observations: int
    total_sessions: int
    oldest_memory: int
    newest_memory: int
    file_size: int
    top_types: dict[ObservationType, int]


class HookInput(TypedDict, total=False):
    session_id: str
    platform: str
    contract_version: str
    project_id: str
    transcript_path: str
    cwd: str
    hook_event_name: str
    permission_mode: str
    tool_name: str
    tool_input: dict[str, Any]
    tool_response: Any
    tool_use_id: str


HookOutput = TypedDict(
    "HookOutput",
    {
        "continue": bool,
        "result": str,
        "reason": str,
        "hookSpecificOutput": dict[str, Any],
    },
    total=False,
)
