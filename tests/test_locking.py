import threading
import time
from pathlib import Path

import pytest

from agent_brain.locking import LockTimeoutError, file_lock, lock_path_for, memory_lock


def test_lock_path_is_a_sibling_file(tmp_path: Path) -> None:
    assert lock_path_for(tmp_path / "mind.sqlite") == tmp_path / "mind.sqlite.lock"


def test_lock_times_out_while_another_holder_has_it(tmp_path: Path) -> None:
    memory_path = tmp_path / "mind.sqlite"
    held = threading.Event()
    release = threading.Event()

    def holder() -> None:
        with memory_lock(memory_path, timeout_s=5):
            held.set()
            release.wait(5)

    thread = threading.Thread(target=holder)
    thread.start()
    try:
        assert held.wait(5)
        started = time.monotonic()
        with pytest.raises(LockTimeoutError), memory_lock(memory_path, timeout_s=0.2):
            pass
        assert time.monotonic() - started >= 0.1
    finally:
        release.set()
        thread.join()

    with memory_lock(memory_path, timeout_s=1):
        pass


def test_lock_is_released_when_block_raises(tmp_path: Path) -> None:
    lock_path = tmp_path / "nested" / "store.lock"
    with pytest.raises(ValueError), file_lock(lock_path, timeout_s=1):
        raise ValueError("boom")
    assert lock_path.parent.is_dir()
    with file_lock(lock_path, timeout_s=0.2):
        pass


def test_serializes_writers(tmp_path: Path) -> None:
    counter_path = tmp_path / "counter.txt"
    counter_path.write_text("0")

    def bump() -> None:
        for _ in range(10):
            with file_lock(tmp_path / "counter.lock", timeout_s=5):
                value = int(counter_path.read_text())
                counter_path.write_text(str(value + 1))

    threads = [threading.Thread(target=bump) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert counter_path.read_text() == "40"
