from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import portalocker

logger = logging.getLogger(__name__)

LOCK_SUFFIX = ".lock"
DEFAULT_LOCK_TIMEOUT_S = 30.0
DEFAULT_CHECK_INTERVAL_S = 0.02


class LockTimeoutError(RuntimeError):
    """Raised when the advisory lock could not be taken within the retry budget."""


def lock_path_for(path: str | Path) -> Path:
    target = Path(path)
    return target.with_name(target.name + LOCK_SUFFIX)


@contextmanager
def file_lock(
    lock_path: str | Path,
    *,
    timeout_s: float = DEFAULT_LOCK_TIMEOUT_S,
    check_interval_s: float = DEFAULT_CHECK_INTERVAL_S,
) -> Iterator[None]:
    """Hold an exclusive advisory lock on ``lock_path`` for the block.

    The OS drops the lock when its holder exits, so a crashed process never
    leaves a stale lock behind; ``timeout_s`` bounds how long we poll.
    """

    path = Path(lock_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    lock = portalocker.Lock(
        str(path),
        mode="a",
        timeout=timeout_s,
        check_interval=check_interval_s,
        fail_when_locked=False,
        flags=portalocker.LockFlags.EXCLUSIVE | portalocker.LockFlags.NON_BLOCKING,
    )
    try:
        lock.acquire()
    except portalocker.exceptions.LockException as exc:
        raise LockTimeoutError(f"timed out after {timeout_s}s waiting for lock {path}") from exc
    try:
        yield
    finally:
        lock.release()


@contextmanager
def memory_lock(
    memory_path: str | Path, *, timeout_s: float = DEFAULT_LOCK_TIMEOUT_S
) -> Iterator[None]:
    with file_lock(lock_path_for(memory_path), timeout_s=timeout_s):
        yield
