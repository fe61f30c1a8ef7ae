from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from ..utils import generate_id

PlatformEventType = Literal["session_start", "tool_observation", "session_stop"]


@dataclass(frozen=True, slots=True)
class PlatformProjectContext:
    platform_project_id: str | None = None
    canonical_path: str | None = None
    cwd: str | None = None


@dataclass(frozen=True, slots=True)
class SessionStartPayload:
    hook_event_name: str | None = None
    permission_mode: str | None = None
    transcript_path: str | None = None


@dataclass(frozen=True, slots=True)
class ToolObservationPayload:
    tool_name: str | None = None
    tool_input: dict[str, Any] | None = None
    tool_response: Any = None
    tool_use_id: str | None = None


@dataclass(frozen=True, slots=True)
class SessionStopPayload:
    transcript_path: str | None = None


EventPayload = SessionStartPayload | ToolObservationPayload | SessionStopPayload


@dataclass(frozen=True, slots=True)
class PlatformEvent:
    event_type: PlatformEventType
    platform: str
    contract_version: str
    session_id: str
    timestamp: int
    project_context: PlatformProjectContext
    payload: EventPayload
    event_id: str = field(default_factory=generate_id)

