from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager

import typer
from rich import print

from ..config import load_config, resolve_project_dir
from ..locking import LockTimeoutError
from ..mind import Mind
from ..platforms import MemoryPathError, detect_platform_from_env
from ..store import StoreError

MindFactory = Callable[[], Mind]


def open_mind(project_dir: str | None = None, platform: str | None = None) -> Mind:
    return Mind.open(
        load_config(),
        project_dir=resolve_project_dir(project_dir),
        platform=platform or detect_platform_from_env(),
    )


@contextmanager
def mind_or_exit(mind_factory: MindFactory) -> Iterator[Mind]:
    try:
        mind = mind_factory()
    except (LockTimeoutError, StoreError, MemoryPathError) as exc:
        print(f"[red]Could not open memory: {exc}[/red]")
        raise typer.Exit(code=1) from exc
    try:
        yield mind
    except (LockTimeoutError, StoreError) as exc:
        print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    finally:
        mind.close()
