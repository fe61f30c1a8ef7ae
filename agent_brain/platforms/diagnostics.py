from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Final, Literal

from ..config import DIAGNOSTIC_PATH_ENV, resolve_project_dir
from ..locking import file_lock, lock_path_for
from ..utils import generate_id, now_ms

logger = logging.getLogger(__name__)

DIAGNOSTIC_RETENTION_DAYS: Final = 30
DAY_MS: Final = 24 * 60 * 60 * 1000
MAX_FIELD_NAMES: Final = 20
DIAGNOSTIC_FILE_NAME: Final = "platform-diagnostics.json"
DIAGNOSTIC_LOCK_TIMEOUT_S: Final = 5.0

DiagnosticSeverity = Literal["warning", "error"]

DIAGNOSTIC_ERROR_TYPES: Final[tuple[str, ...]] = (
    "invalid_contract_version",
    "incompatible_contract_major",
    "missing_project_identity",
    "unsupported_platform",
    "malformed_payload",
)


@dataclass(frozen=True, slots=True)
class AdapterDiagnostic:
    diagnostic_id: str
    timestamp: int
    platform: str
    error_type: str
    severity: DiagnosticSeverity
    expires_at: int
    field_names: tuple[str, ...] | None = None
    redacted: bool = True
    retention_days: int = DIAGNOSTIC_RETENTION_DAYS

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["field_names"] = list(self.field_names) if self.field_names else None
        return data

    @classmethod
    def from_dict(cls, value: object) -> AdapterDiagnostic | None:
        if not isinstance(value, dict):
            return None
        field_names = value.get("field_names")
        if field_names is not None and (
            not isinstance(field_names, list)
            or not all(isinstance(name, str) for name in field_names)
        ):
            return None
        if (
            not isinstance(value.get("diagnostic_id"), str)
            or not _is_int(value.get("timestamp"))
            or not isinstance(value.get("platform"), str)
            or value.get("error_type") not in DIAGNOSTIC_ERROR_TYPES
            or value.get("severity") not in {"warning", "error"}
            or value.get("redacted") is not True
            or not _is_int(value.get("retention_days"))
            or not _is_int(value.get("expires_at"))
        ):
            return None
        return cls(
            diagnostic_id=value["diagnostic_id"],
            timestamp=value["timestamp"],
            platform=value["platform"],
            error_type=value["error_type"],
            severity=value["severity"],
            expires_at=value["expires_at"],
            field_names=tuple(field_names) if field_names else None,
            redacted=True,
            retention_days=value["retention_days"],
        )


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def sanitize_field_names(field_names: Iterable[str] | None) -> tuple[str, ...] | None:
    if not field_names:
        return None
    unique = list(dict.fromkeys(name for name in field_names if isinstance(name, str)))
    if not unique:
        return None
    return tuple(unique[:MAX_FIELD_NAMES])


def prune_expired(
    records: Iterable[AdapterDiagnostic], now: int | None = None
) -> list[AdapterDiagnostic]:
    current = now if now is not None else now_ms()
    return [record for record in records if record.expires_at > current]


def resolve_diagnostic_path(project_dir: str | Path | None = None) -> Path:
    root = Path(project_dir) if project_dir else resolve_project_dir()
    explicit = (os.getenv(DIAGNOSTIC_PATH_ENV) or "").strip()
    if explicit:
        return (root / explicit).resolve()
    return (root / ".agent-brain" / DIAGNOSTIC_FILE_NAME).resolve()


class DiagnosticStore:
    """File-backed diagnostic log shared by every host process of a project."""

    def __init__(self, path: str | Path, *, lock_timeout_s: float = DIAGNOSTIC_LOCK_TIMEOUT_S):
        self.path = Path(path)
        self.lock_timeout_s = lock_timeout_s

    def append(self, record: AdapterDiagnostic, now: int | None = None) -> None:
        with self._locked():
            latest = self._load()
            self._persist(prune_expired([*latest, record], now))

    def list(self, now: int | None = None) -> list[AdapterDiagnostic]:
        with self._locked():
            latest = self._load()
            pruned = prune_expired(latest, now)
            if len(pruned) != len(latest):
                self._persist(pruned)
            return pruned

    def _locked(self):
        return file_lock(lock_path_for(self.path), timeout_s=self.lock_timeout_s)

    def _load(self) -> list[AdapterDiagnostic]:
        if not self.path.exists():
            return []
        try:
            raw = self.path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            logger.debug("diagnostic store read failed", exc_info=exc)
            return []
        if not raw:
            return []
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            logger.debug("diagnostic store is not valid json: %s", self.path)
            return []
        if not isinstance(parsed, list):
            return []
        records: list[AdapterDiagnostic] = []
        for item in parsed:
            record = AdapterDiagnostic.from_dict(item)
            if record is not None:
                records.append(record)
        return records

    def _persist(self, records: list[AdapterDiagnostic]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(f"{self.path.name}.tmp-{os.getpid()}-{now_ms()}")
        try:
            tmp_path.write_text(
                json.dumps([record.to_dict() for record in records], indent=2) + "\n",
                encoding="utf-8",
            )
            os.replace(tmp_path, self.path)
        finally:
            tmp_path.unlink(missing_ok=True)


def create_redacted_diagnostic(
    *,
    platform: str,
    error_type: str,
    field_names: Iterable[str] | None = None,
    severity: DiagnosticSeverity = "warning",
    now: int | None = None,
    store: DiagnosticStore | None = None,
) -> AdapterDiagnostic:
    """Build a diagnostic and append it to ``store`` when one is given.

    Persistence failures are logged and dropped; the record is always returned.
    """

    timestamp = now if now is not None else now_ms()
    diagnostic = AdapterDiagnostic(
        diagnostic_id=generate_id(),
        timestamp=timestamp,
        platform=platform,
        error_type=error_type,
        field_names=sanitize_field_names(field_names),
        severity=severity,
        expires_at=timestamp + DIAGNOSTIC_RETENTION_DAYS * DAY_MS,
    )
    if store is not None:
        try:
            store.append(diagnostic)
        except Exception as exc:  # noqa: BLE001
            logger.debug("diagnostic persistence failed", exc_info=exc)
    return diagnostic
