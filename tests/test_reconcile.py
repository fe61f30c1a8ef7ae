import pytest

from agent_brain.mind.reconcile import (
    SESSION_ID_SOURCES,
    TYPE_SOURCES,
    decode_first,
    extract_observation_type,
    extract_preview_field_values,
    extract_session_id,
    extract_session_summary,
    normalize_timestamp_ms,
    observation_from_hit,
    observation_from_timeline,
    parse_iso_timestamp_ms,
    parse_leading_json_object,
    to_search_frames,
    to_timeline_frames,
    with_preview_fields,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (1_700_000_000, 1_700_000_000_000),
        (1_700_000_000.5, 1_700_000_000_500),
        (1_700_000_000_000, 1_700_000_000_000),
        (0, 0),
        (-5, 0),
        (float("nan"), 0),
        (float("inf"), 0),
        (True, 0),
        ("1700000000", 0),
        (None, 0),
    ],
)
def test_normalize_timestamp_ms(value: object, expected: int) -> None:
    assert normalize_timestamp_ms(value) == expected


def test_parse_iso_timestamp_ms() -> None:
    assert parse_iso_timestamp_ms("2023-11-14T22:13:20Z") == 1_700_000_000_000
    assert parse_iso_timestamp_ms("2023-11-14T22:13:20") == 1_700_000_000_000
    assert parse_iso_timestamp_ms("yesterday") == 0
    assert parse_iso_timestamp_ms(None) == 0


def test_parse_leading_json_object_ignores_braces_in_strings() -> None:
    text = 'prefix {"summary": "uses {braces} and \\"quotes\\"", "n": {"x": 1}} trailing }'
    assert parse_leading_json_object(text) == {
        "summary": 'uses {braces} and "quotes"',
        "n": {"x": 1},
    }
    assert parse_leading_json_object("no object here") is None
    assert parse_leading_json_object("{unbalanced") is None
    assert parse_leading_json_object("{not: json}") is None


def test_type_decoding_follows_source_order() -> None:
    frame = {
        "labels": ["misc", "Decision"],
        "label": "bugfix",
        "metadata": {"type": "feature"},
        "preview": "title: [warning] x",
    }
    decoded = decode_first(frame, TYPE_SOURCES)
    assert decoded is not None
    assert (decoded.value, decoded.source) == ("decision", "labels")

    assert extract_observation_type({"label": "bugfix", "metadata": {"type": "feature"}}) == (
        "bugfix"
    )
    assert extract_observation_type({"metadata": {"type": "feature"}}) == "feature"
    assert extract_observation_type({"preview": "title: [Warning] disk full\nbody"}) == "warning"
    assert extract_observation_type({"preview": "title: x\nlabels: session pattern"}) == "pattern"
    assert extract_observation_type({"label": "session"}) is None


def test_preview_field_values() -> None:
    preview = "title: [discovery] Read app.py\nlabels: discovery\ntags: discovery tool:Read\nbody"
    assert extract_preview_field_values(preview, "tags") == ["discovery", "tool:Read"]
    assert extract_preview_field_values(preview, "missing") == []
    assert extract_preview_field_values(None, "tags") == []

    merged = with_preview_fields({"frame_id": 3, "preview": preview})
    assert merged["labels"] == ["discovery"]
    assert merged["label"] == "discovery"
    assert merged["tags"] == ["discovery", "tool:Read"]


def test_hit_prefers_tool_tag_and_metadata() -> None:
    result = observation_from_hit(
        {
            "frame_id": 7,
            "title": "[decision] Use sqlite",
            "text": "Chose sqlite for portability",
            "snippet": "Chose sqlite",
            "score": 2.5,
            "labels": ["decision"],
            "tags": ["decision", "tool:Edit"],
            "metadata": {"observation_id": "obs-1", "timestamp": 1_700_000_000_000},
        }
    )
    observation = result.observation
    assert observation.id == "obs-1"
    assert observation.type == "decision"
    assert observation.tool == "Edit"
    assert observation.summary == "Use sqlite"
    assert observation.timestamp == 1_700_000_000_000
    assert "tool_inferred" not in observation.metadata
    assert result.score == 2.5
    assert result.snippet == "Chose sqlite"


def test_legacy_tool_tag_is_flagged_as_inferred() -> None:
    result = observation_from_hit(
        {
            "frame_id": 1,
            "title": "Ran tests",
            "text": "pytest passed",
            "tags": ["discovery", "Bash"],
            "created_at": "2023-11-14T22:13:20+00:00",
        }
    )
    assert result.observation.tool == "Bash"
    assert result.observation.metadata["tool_inferred"] is True
    assert result.observation.type == "discovery"
    assert result.observation.timestamp == 1_700_000_000_000
    assert result.observation.id == "1"


def test_timeline_observation_uses_frame_info_when_present() -> None:
    row = {"frame_id": 4, "timestamp": 1_700_000_000, "preview": "title: x\nbody text"}
    info = {
        "frame_id": 4,
        "title": "[bugfix] Fixed race",
        "labels": ["bugfix"],
        "tags": ["bugfix", "tool:Edit"],
        "metadata": {"observation_id": "obs-4"},
        "timestamp": 1_700_000_000,
    }
    observation = observation_from_timeline(row, info)
    assert observation.id == "obs-4"
    assert observation.type == "bugfix"
    assert observation.tool == "Edit"
    assert observation.summary == "Fixed race"
    assert observation.timestamp == 1_700_000_000_000
    assert observation.content == "title: x\nbody text"


def test_timeline_observation_falls_back_to_preview() -> None:
    row = {
        "frame_id": 9,
        "timestamp": 1_700_000_000,
        "preview": "title: [problem] Flaky test\nlabels: problem\ntags: problem\nbody",
    }
    observation = observation_from_timeline(row, None)
    assert observation.id == "9"
    assert observation.type == "problem"
    assert observation.tool is None


def _summary(**overrides):
    data = {
        "id": "sess-1",
        "start_time": 1_700_000_000,
        "end_time": 1_700_000_100_000,
        "observation_count": 3,
        "key_decisions": ["Use sqlite", 5],
        "files_modified": ["app.py"],
        "summary": "Did things",
    }
    data.update(overrides)
    return data


def test_session_summary_from_metadata_normalizes_fields() -> None:
    summary = extract_session_summary({"metadata": _summary(observation_count=3.7)})
    assert summary is not None
    assert summary.start_time == 1_700_000_000_000
    assert summary.end_time == 1_700_000_100_000
    assert summary.observation_count == 3
    assert summary.key_decisions == ["Use sqlite"]


def test_session_summary_accepts_camel_case_text() -> None:
    text = (
        '{"id": "sess-2", "startTime": 1, "endTime": 2, "observationCount": 1, '
        '"keyDecisions": [], "filesModified": [], "summary": "camel"} extra'
    )
    summary = extract_session_summary({"metadata": {}, "text": text})
    assert summary is not None
    assert summary.id == "sess-2"
    assert summary.summary == "camel"


def test_session_summary_rejects_incomplete_objects() -> None:
    incomplete = _summary()
    del incomplete["files_modified"]
    assert extract_session_summary({"metadata": incomplete}) is None
    assert extract_session_summary({"text": "not json"}) is None


@pytest.mark.parametrize("value", ["NaN", "Infinity", "-Infinity"])
def test_session_summary_rejects_non_finite_counts(value: str) -> None:
    text = (
        f'{{"id": "sess-3", "start_time": 1, "end_time": 2, "observation_count": {value}, '
        '"key_decisions": [], "files_modified": [], "summary": "odd producer"}'
    )
    assert extract_session_summary({"metadata": {}, "text": text}) is None
    assert extract_session_summary({"metadata": _summary(observation_count=float("nan"))}) is None


def test_session_id_sources() -> None:
    assert [name for name, _ in SESSION_ID_SOURCES] == [
        "session_tag",
        "metadata.session_id",
        "session_summary",
    ]
    assert extract_session_id({"tags": ["session:abc"], "metadata": {"session_id": "x"}}) == "abc"
    assert extract_session_id({"metadata": {"sessionId": "camel"}}) == "camel"
    assert extract_session_id({"label": "session", "metadata": _summary(id="from-summary")}) == (
        "from-summary"
    )
    assert extract_session_id({"label": "note", "metadata": {"id": "nope"}}) is None


def test_result_shapes() -> None:
    assert to_search_frames({"hits": [{"a": 1}, "junk"]}) == [{"a": 1}]
    assert to_search_frames({"frames": [{"b": 2}]}) == [{"b": 2}]
    assert to_search_frames(["not", "a", "mapping"]) == []
    assert to_timeline_frames([{"a": 1}, 3]) == [{"a": 1}]
    assert to_timeline_frames({"frames": [{"b": 2}]}) == [{"b": 2}]
    assert to_timeline_frames(None) == []
