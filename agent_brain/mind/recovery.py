from __future__ import annotations

import logging
import os
from collections.abc import Callable
from pathlib import Path

from ..store import RecordStore, create_store, open_store
from ..utils import now_ms

logger = logging.getLogger(__name__)

MAX_STORE_FILE_SIZE_BYTES = 100 * 1024 * 1024
BACKUP_KEEP_COUNT = 3
BACKUP_MARKER = ".backup-"

CORRUPTION_SIGNATURES: tuple[str, ...] = (
    "Deserialization",
    "UnexpectedVariant",
    "Invalid",
    "corrupt",
    "version mismatch",
    "validation failed",
    "unable to recover",
    "table of contents",
    "file is not a database",
    "malformed",
)

StoreFactory = Callable[[Path], RecordStore]


def is_corrupted_store_error(exc: BaseException) -> bool:
    message = str(exc)
    return any(signature in message for signature in CORRUPTION_SIGNATURES)


def backup_path_for(path: Path, timestamp_ms: int | None = None) -> Path:
    stamp = timestamp_ms if timestamp_ms is not None else now_ms()
    return path.with_name(f"{path.name}{BACKUP_MARKER}{stamp}")


def list_backups(path: Path) -> list[Path]:
    prefix = f"{path.name}{BACKUP_MARKER}"
    if not path.parent.exists():
        return []
    backups = []
    for candidate in path.parent.iterdir():
        if not candidate.name.startswith(prefix):
            continue
        stamp = candidate.name[len(prefix) :]
        if stamp.isdigit():
            backups.append((int(stamp), candidate))
    return [candidate for _, candidate in sorted(backups, reverse=True)]


def prune_backups(path: str | Path, keep: int = BACKUP_KEEP_COUNT) -> list[Path]:
    """Delete all but the ``keep`` newest backups of ``path``. Best effort."""

    removed: list[Path] = []
    try:
        backups = list_backups(Path(path))
    except OSError as exc:
        logger.debug("backup listing failed for %s", path, exc_info=exc)
        return removed
    for stale in backups[keep:]:
        try:
            stale.unlink()
        except OSError as exc:
            logger.debug("could not remove backup %s", stale, exc_info=exc)
            continue
        removed.append(stale)
    if removed:
        logger.warning("pruned %d old memory backups", len(removed))
    return removed


def _move_aside(path: Path) -> Path | None:
    backup = backup_path_for(path)
    try:
        os.replace(path, backup)
        return backup
    except OSError as exc:
        logger.warning("could not back up %s, deleting it", path, exc_info=exc)
        path.unlink(missing_ok=True)
        return None


def open_store_with_recovery(
    path: str | Path,
    *,
    max_file_size_bytes: int = MAX_STORE_FILE_SIZE_BYTES,
    opener: StoreFactory = open_store,
    creator: StoreFactory = create_store,
) -> RecordStore:
    """Open the store at ``path``, rebuilding it when it is unusable.

    Must run under the memory lock. Missing files are created; oversized or
    corrupted files are moved to a timestamped backup first. Open errors that
    do not look like corruption propagate.
    """

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)

    if not target.exists():
        return creator(target)

    size = target.stat().st_size
    if size > max_file_size_bytes:
        backup = _move_aside(target)
        logger.warning(
            "memory file %s is %d bytes (limit %d); started fresh, backup at %s",
            target,
            size,
            max_file_size_bytes,
            backup,
        )
        store = creator(target)
        prune_backups(target)
        return store

    try:
        store = opener(target)
    except Exception as exc:
        if not is_corrupted_store_error(exc):
            raise
        backup = _move_aside(target)
        logger.warning("memory file %s is corrupted (%s); backup at %s", target, exc, backup)
        store = creator(target)
    prune_backups(target)
    return store
