from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ...utils import now_ms
from ..events import (
    PlatformEvent,
    PlatformEventType,
    PlatformProjectContext,
    SessionStartPayload,
    SessionStopPayload,
    ToolObservationPayload,
)

CONTRACT_VERSION = "1.0.0"


def _text(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


class HookAdapter:
    """Maps the common hook payload shape onto ``PlatformEvent``.

    Hosts whose payloads deviate only in tool naming or project fields
    subclass this and override the small hooks below.
    """

    def __init__(self, platform: str, contract_version: str = CONTRACT_VERSION) -> None:
        self.platform = platform
        self.contract_version = contract_version

    def __repr__(self) -> str:
        return f"{type(self).__name__}(platform={self.platform!r})"

    def project_context(self, hook_input: Mapping[str, Any]) -> PlatformProjectContext:
        cwd = _text(hook_input.get("cwd"))
        return PlatformProjectContext(
            platform_project_id=_text(hook_input.get("project_id")),
            canonical_path=cwd,
            cwd=cwd,
        )

    def tool_name(self, hook_input: Mapping[str, Any]) -> str | None:
        return _text(hook_input.get("tool_name"))

    def normalize_session_start(self, hook_input: Mapping[str, Any]) -> PlatformEvent:
        return self._event(
            "session_start",
            hook_input,
            SessionStartPayload(
                hook_event_name=_text(hook_input.get("hook_event_name")),
                permission_mode=_text(hook_input.get("permission_mode")),
                transcript_path=_text(hook_input.get("transcript_path")),
            ),
        )

    def normalize_tool_observation(self, hook_input: Mapping[str, Any]) -> PlatformEvent | None:
        tool_name = self.tool_name(hook_input)
        if not tool_name:
            return None
        tool_input = hook_input.get("tool_input")
        return self._event(
            "tool_observation",
            hook_input,
            ToolObservationPayload(
                tool_name=tool_name,
                tool_input=dict(tool_input) if isinstance(tool_input, Mapping) else None,
                tool_response=hook_input.get("tool_response"),
                tool_use_id=_text(hook_input.get("tool_use_id")),
            ),
        )

    def normalize_session_stop(self, hook_input: Mapping[str, Any]) -> PlatformEvent:
        return self._event(
            "session_stop",
            hook_input,
            SessionStopPayload(transcript_path=_text(hook_input.get("transcript_path"))),
        )

    def _event(
        self,
        event_type: PlatformEventType,
        hook_input: Mapping[str, Any],
        payload: SessionStartPayload | ToolObservationPayload | SessionStopPayload,
    ) -> PlatformEvent:
        declared = hook_input.get("contract_version")
        if declared is None:
            contract_version = ""
        elif isinstance(declared, str):
            contract_version = declared.strip()
        else:
            # non-string declarations must still reach the version gate
            contract_version = str(declared)
        return PlatformEvent(
            event_type=event_type,
            platform=self.platform,
            contract_version=contract_version or self.contract_version,
            session_id=str(hook_input.get("session_id") or ""),
            timestamp=now_ms(),
            project_context=self.project_context(hook_input),
            payload=payload,
        )


def create_adapter(platform: str) -> HookAdapter:
    """Adapter for a host that speaks the common hook payload as-is.

    New hosts can be onboarded with ``registry.register(create_adapter("my-host"))``.
    """

    return HookAdapter(platform)
