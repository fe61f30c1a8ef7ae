"""Turn loosely typed store frames into typed observations.

Store results come in several shapes depending on the call that produced them
(search hits, timeline rows, frame info). Each field is decoded from an ordered
list of sources; the first source that yields a value wins.
"""

from __future__ import annotations

import datetime as dt
import json
import math
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from ..observation_types import (
    DEFAULT_OBSERVATION_TYPE,
    ObservationType,
    normalize_observation_type,
)
from ..types import MemorySearchResult, Observation, SessionSummary
from ..utils import generate_id

# 2100-01-01 in epoch seconds. Smaller positive values are second-based.
SECONDS_CUTOFF = 4102444800

TOOL_TAG_PREFIX = "tool:"
SESSION_TAG_PREFIX = "session:"
SESSION_LABEL = "session"

_TITLE_TYPE_PREFIX = re.compile(r"^\[.*?\]\s*")
_PREVIEW_TITLE_TYPE = re.compile(r"(?:^|\n)title:\s*\[([^\]]+)\]", re.IGNORECASE)
_PREVIEW_VALUE_SPLIT = re.compile(r"[^a-z0-9:_-]+", re.IGNORECASE)

Frame = Mapping[str, Any]
Decoder = Callable[[Frame], Any]


@dataclass(frozen=True, slots=True)
class Decoded:
    value: Any
    source: str


def decode_first(frame: Frame, sources: Sequence[tuple[str, Decoder]]) -> Decoded | None:
    for name, decoder in sources:
        value = decoder(frame)
        if value is not None:
            return Decoded(value=value, source=name)
    return None


def normalize_timestamp_ms(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if not math.isfinite(value) or value <= 0:
        return 0
    if value < SECONDS_CUTOFF:
        return round(value * 1000)
    return round(value)


def parse_iso_timestamp_ms(value: object) -> int:
    if not isinstance(value, str) or not value.strip():
        return 0
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = dt.datetime.fromisoformat(text)
    except ValueError:
        return 0
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.UTC)
    return normalize_timestamp_ms(parsed.timestamp() * 1000)


def string_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def frame_metadata(frame: Frame) -> dict[str, Any]:
    metadata = frame.get("metadata")
    return dict(metadata) if isinstance(metadata, Mapping) else {}


def extract_preview_field_values(preview: object, field: str) -> list[str]:
    """Values of a ``field: a b c`` header line inside a timeline preview."""

    if not isinstance(preview, str) or not preview:
        return []
    match = re.search(rf"(?:^|\n){re.escape(field)}:\s*([^\n]*)", preview, re.IGNORECASE)
    if not match or not match.group(1):
        return []
    return [value for value in _PREVIEW_VALUE_SPLIT.split(match.group(1)) if value.strip()]


def strip_type_prefix(title: object) -> str:
    if not isinstance(title, str):
        return ""
    return _TITLE_TYPE_PREFIX.sub("", title, count=1)


# Observation type


def _type_from_labels(frame: Frame) -> ObservationType | None:
    for label in string_list(frame.get("labels")):
        normalized = normalize_observation_type(label)
        if normalized:
            return normalized
    return None


def _type_from_label(frame: Frame) -> ObservationType | None:
    return normalize_observation_type(frame.get("label"))


def _type_from_metadata(frame: Frame) -> ObservationType | None:
    return normalize_observation_type(frame_metadata(frame).get("type"))


def _type_from_preview(frame: Frame) -> ObservationType | None:
    preview = frame.get("preview")
    for label in extract_preview_field_values(preview, "labels"):
        normalized = normalize_observation_type(label)
        if normalized:
            return normalized
    if not isinstance(preview, str):
        return None
    match = _PREVIEW_TITLE_TYPE.search(preview)
    return normalize_observation_type(match.group(1)) if match else None


TYPE_SOURCES: tuple[tuple[str, Decoder], ...] = (
    ("labels", _type_from_labels),
    ("label", _type_from_label),
    ("metadata.type", _type_from_metadata),
    ("preview", _type_from_preview),
)


def extract_observation_type(frame: Frame) -> ObservationType | None:
    decoded = decode_first(frame, TYPE_SOURCES)
    return decoded.value if decoded else None


# Tool


def _tool_from_tag(frame: Frame) -> str | None:
    for tag in string_list(frame.get("tags")):
        if tag.startswith(TOOL_TAG_PREFIX):
            return tag[len(TOOL_TAG_PREFIX) :]
    return None


def _tool_from_metadata(frame: Frame) -> str | None:
    tool = frame_metadata(frame).get("tool")
    return tool if isinstance(tool, str) and tool else None


def _tool_from_legacy_tag(frame: Frame) -> str | None:
    # Heuristic for records written before tools were tagged with a prefix:
    # the first capitalized tag that is not the observation type.
    observation_type = extract_observation_type(frame) or DEFAULT_OBSERVATION_TYPE
    for tag in string_list(frame.get("tags")):
        if tag.startswith((TOOL_TAG_PREFIX, SESSION_TAG_PREFIX)):
            continue
        if not any(ch.isupper() for ch in tag):
            continue
        if tag.lower() != observation_type:
            return tag
    return None


TOOL_HEURISTIC_SOURCE = "legacy_tag"

TOOL_SOURCES: tuple[tuple[str, Decoder], ...] = (
    ("tool_tag", _tool_from_tag),
    ("metadata.tool", _tool_from_metadata),
    (TOOL_HEURISTIC_SOURCE, _tool_from_legacy_tag),
)


# Session summaries


def _int_field(candidate: Mapping[str, Any], *keys: str) -> int | None:
    for key in keys:
        value = candidate.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        if math.isfinite(value):
            return value  # type: ignore[return-value]
    return None


def _list_field(candidate: Mapping[str, Any], *keys: str) -> list[Any] | None:
    for key in keys:
        value = candidate.get(key)
        if isinstance(value, list):
            return value
    return None


def parse_session_summary(value: object) -> SessionSummary | None:
    """Validate a summary object; both snake_case and camelCase keys are read."""

    if not isinstance(value, Mapping):
        return None
    session_id = value.get("id")
    summary = value.get("summary")
    start_time = _int_field(value, "start_time", "startTime")
    end_time = _int_field(value, "end_time", "endTime")
    observation_count = _int_field(value, "observation_count", "observationCount")
    key_decisions = _list_field(value, "key_decisions", "keyDecisions")
    files_modified = _list_field(value, "files_modified", "filesModified")
    if (
        not isinstance(session_id, str)
        or not isinstance(summary, str)
        or start_time is None
        or end_time is None
        or observation_count is None
        or key_decisions is None
        or files_modified is None
    ):
        return None
    return SessionSummary(
        id=session_id,
        start_time=normalize_timestamp_ms(start_time),
        end_time=normalize_timestamp_ms(end_time),
        observation_count=max(0, math.trunc(observation_count)),
        key_decisions=[item for item in key_decisions if isinstance(item, str)],
        files_modified=[item for item in files_modified if isinstance(item, str)],
        summary=summary,
    )


def parse_leading_json_object(text: str) -> Any | None:
    """Parse the first balanced ``{...}`` object in ``text``.

    Braces inside JSON strings (including escaped quotes) are ignored.
    """

    start = text.find("{")
    if start < 0:
        return None
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        ch = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                try:
                    return json.loads(text[start : index + 1])
                except json.JSONDecodeError:
                    return None
    return None


def _summary_from_metadata(frame: Frame) -> SessionSummary | None:
    return parse_session_summary(frame.get("metadata"))


def _summary_from_text(frame: Frame) -> SessionSummary | None:
    text = frame.get("text")
    if not isinstance(text, str):
        return None
    return parse_session_summary(parse_leading_json_object(text))


SUMMARY_SOURCES: tuple[tuple[str, Decoder], ...] = (
    ("metadata", _summary_from_metadata),
    ("text", _summary_from_text),
)


def extract_session_summary(frame: Frame) -> SessionSummary | None:
    decoded = decode_first(frame, SUMMARY_SOURCES)
    return decoded.value if decoded else None


# Session id


def _session_from_tag(frame: Frame) -> str | None:
    for tag in string_list(frame.get("tags")):
        if tag.startswith(SESSION_TAG_PREFIX):
            return tag[len(SESSION_TAG_PREFIX) :] or None
    return None


def _session_from_metadata(frame: Frame) -> str | None:
    metadata = frame_metadata(frame)
    for key in ("session_id", "sessionId"):
        value = metadata.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def _session_from_summary(frame: Frame) -> str | None:
    if frame.get("label") != SESSION_LABEL:
        return None
    summary = extract_session_summary(frame)
    return summary.id if summary else None


SESSION_ID_SOURCES: tuple[tuple[str, Decoder], ...] = (
    ("session_tag", _session_from_tag),
    ("metadata.session_id", _session_from_metadata),
    ("session_summary", _session_from_summary),
)


def extract_session_id(frame: Frame) -> str | None:
    decoded = decode_first(frame, SESSION_ID_SOURCES)
    return decoded.value if decoded else None


# Result shapes


def to_search_frames(result: object) -> list[Frame]:
    if isinstance(result, Mapping):
        for key in ("hits", "frames"):
            frames = result.get(key)
            if isinstance(frames, list):
                return [frame for frame in frames if isinstance(frame, Mapping)]
    return []


def to_timeline_frames(result: object) -> list[Frame]:
    if isinstance(result, list):
        frames = result
    elif isinstance(result, Mapping) and isinstance(result.get("frames"), list):
        frames = result["frames"]
    else:
        return []
    return [frame for frame in frames if isinstance(frame, Mapping)]


def with_preview_fields(frame: Frame) -> dict[str, Any]:
    """Copy of a timeline row with labels and tags lifted out of its preview."""

    labels = extract_preview_field_values(frame.get("preview"), "labels")
    tags = extract_preview_field_values(frame.get("preview"), "tags")
    merged = dict(frame)
    merged.setdefault("labels", labels)
    merged.setdefault("tags", tags)
    if labels:
        merged.setdefault("label", labels[0])
    return merged


def _first_timestamp(*candidates: int) -> int:
    for candidate in candidates:
        if candidate > 0:
            return candidate
    return 0


def _observation_metadata(frame: Frame, tool: Decoded | None) -> dict[str, Any]:
    metadata = frame_metadata(frame)
    metadata["labels"] = string_list(frame.get("labels"))
    metadata["tags"] = string_list(frame.get("tags"))
    if tool is not None and tool.source == TOOL_HEURISTIC_SOURCE:
        metadata["tool_inferred"] = True
    return metadata


def observation_from_hit(frame: Frame) -> MemorySearchResult:
    metadata = frame_metadata(frame)
    observation_type = extract_observation_type(frame) or DEFAULT_OBSERVATION_TYPE
    tool = decode_first(frame, TOOL_SOURCES)
    snippet = frame.get("snippet") if isinstance(frame.get("snippet"), str) else ""
    text = frame.get("text") if isinstance(frame.get("text"), str) else ""
    timestamp = _first_timestamp(
        normalize_timestamp_ms(metadata.get("timestamp")),
        normalize_timestamp_ms(frame.get("timestamp")),
        parse_iso_timestamp_ms(frame.get("created_at")),
    )
    observation = Observation(
        id=str(metadata.get("observation_id") or frame.get("frame_id") or generate_id()),
        timestamp=timestamp,
        type=observation_type,
        tool=tool.value if tool else None,
        summary=strip_type_prefix(frame.get("title")) or snippet,
        content=text or snippet,
        metadata=_observation_metadata(frame, tool),
    )
    score = frame.get("score")
    return MemorySearchResult(
        observation=observation,
        score=float(score) if isinstance(score, (int, float)) else 0.0,
        snippet=snippet or text[:200],
    )


def observation_from_timeline(row: Frame, info: Frame | None) -> Observation:
    """Build an observation from a timeline row and its frame info, if any."""

    details: dict[str, Any] = dict(info) if info else with_preview_fields(row)
    labels = string_list(details.get("labels"))
    if labels:
        details.setdefault("label", labels[0])
    metadata = frame_metadata(details)
    row_metadata = frame_metadata(row)
    tool = decode_first(details, TOOL_SOURCES[:2])
    preview = row.get("preview") if isinstance(row.get("preview"), str) else ""
    return Observation(
        id=str(
            metadata.get("observation_id")
            or row_metadata.get("observation_id")
            or row.get("frame_id")
        ),
        timestamp=normalize_timestamp_ms(details.get("timestamp") or row.get("timestamp") or 0),
        type=extract_observation_type(details) or DEFAULT_OBSERVATION_TYPE,
        tool=tool.value if tool else None,
        summary=strip_type_prefix(details.get("title")) or preview[:100],
        content=preview,
        metadata=_observation_metadata(details, tool),
    )
