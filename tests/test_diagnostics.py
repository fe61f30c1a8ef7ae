import json
import threading
from pathlib import Path

import pytest

from agent_brain.platforms.diagnostics import (
    DAY_MS,
    DIAGNOSTIC_RETENTION_DAYS,
    MAX_FIELD_NAMES,
    AdapterDiagnostic,
    DiagnosticStore,
    create_redacted_diagnostic,
    prune_expired,
    resolve_diagnostic_path,
    sanitize_field_names,
)

NOW = 1_700_000_000_000


def test_diagnostic_is_redacted_with_thirty_day_retention() -> None:
    diagnostic = create_redacted_diagnostic(
        platform="claude",
        error_type="missing_project_identity",
        field_names=["cwd", "cwd", "canonical_path"],
        now=NOW,
    )
    assert diagnostic.redacted is True
    assert diagnostic.retention_days == DIAGNOSTIC_RETENTION_DAYS
    assert diagnostic.expires_at == NOW + 30 * DAY_MS
    assert diagnostic.field_names == ("cwd", "canonical_path")
    assert diagnostic.severity == "warning"


def test_field_names_are_capped() -> None:
    names = [f"field_{index}" for index in range(50)]
    sanitized = sanitize_field_names(names)
    assert sanitized is not None
    assert len(sanitized) == MAX_FIELD_NAMES
    assert sanitized[0] == "field_0"
    assert sanitize_field_names([]) is None


def test_prune_expired_drops_records_at_expiry() -> None:
    live = create_redacted_diagnostic(platform="claude", error_type="malformed_payload", now=NOW)
    expired = create_redacted_diagnostic(
        platform="claude", error_type="malformed_payload", now=NOW - 31 * DAY_MS
    )
    assert prune_expired([live, expired], now=NOW) == [live]
    assert prune_expired([live], now=live.expires_at) == []


def test_store_appends_and_prunes_on_write(tmp_path: Path) -> None:
    store = DiagnosticStore(tmp_path / "diagnostics.json")
    old = create_redacted_diagnostic(
        platform="claude", error_type="unsupported_platform", now=NOW - 40 * DAY_MS
    )
    store.append(old, now=NOW - 40 * DAY_MS)
    fresh = create_redacted_diagnostic(platform="opencode", error_type="malformed_payload", now=NOW)
    store.append(fresh, now=NOW)

    stored = json.loads((tmp_path / "diagnostics.json").read_text())
    assert [item["diagnostic_id"] for item in stored] == [fresh.diagnostic_id]
    assert store.list(now=NOW) == [fresh]


def test_store_list_rewrites_file_without_expired_records(tmp_path: Path) -> None:
    path = tmp_path / "diagnostics.json"
    store = DiagnosticStore(path)
    record = create_redacted_diagnostic(platform="claude", error_type="malformed_payload", now=NOW)
    store.append(record, now=NOW)

    assert store.list(now=record.expires_at + 1) == []
    assert json.loads(path.read_text()) == []


def test_store_ignores_invalid_entries(tmp_path: Path) -> None:
    path = tmp_path / "diagnostics.json"
    valid = create_redacted_diagnostic(platform="claude", error_type="malformed_payload", now=NOW)
    path.write_text(
        json.dumps(
            [
                valid.to_dict(),
                {"diagnostic_id": "x"},
                {**valid.to_dict(), "redacted": False},
                {**valid.to_dict(), "error_type": "made_up"},
                "garbage",
            ]
        )
    )
    assert DiagnosticStore(path).list(now=NOW) == [valid]


def test_store_tolerates_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / "diagnostics.json"
    path.write_text("{not json")
    store = DiagnosticStore(path)
    assert store.list(now=NOW) == []
    record = create_redacted_diagnostic(platform="claude", error_type="malformed_payload", now=NOW)
    store.append(record, now=NOW)
    assert store.list(now=NOW) == [record]


def test_record_round_trips_through_dict() -> None:
    record = create_redacted_diagnostic(
        platform="claude", error_type="malformed_payload", field_names=["a"], now=NOW
    )
    assert AdapterDiagnostic.from_dict(record.to_dict()) == record
    assert AdapterDiagnostic.from_dict({**record.to_dict(), "timestamp": True}) is None


def test_concurrent_appends_keep_every_record(tmp_path: Path) -> None:
    path = tmp_path / "diagnostics.json"
    errors: list[BaseException] = []

    def worker(index: int) -> None:
        try:
            store = DiagnosticStore(path)
            for _ in range(5):
                create_redacted_diagnostic(
                    platform=f"host-{index}",
                    error_type="malformed_payload",
                    store=store,
                )
        except BaseException as exc:  # noqa: BLE001
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(index,)) for index in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert not errors
    assert len(DiagnosticStore(path).list()) == 20


def test_resolve_diagnostic_path(project_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    assert resolve_diagnostic_path(project_dir) == (
        project_dir / ".agent-brain" / "platform-diagnostics.json"
    ).resolve()
    monkeypatch.setenv("AGENT_BRAIN_DIAGNOSTIC_PATH", "logs/diag.json")
    assert resolve_diagnostic_path(project_dir) == (project_dir / "logs" / "diag.json").resolve()
