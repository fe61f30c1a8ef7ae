from __future__ import annotations

import os
import re
import shlex
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from ..config import DEFAULT_MEMORY_PATH, LEGACY_MEMORY_PATHS

MemoryPathMode = Literal["legacy_first", "platform_opt_in"]

_UNSAFE_PLATFORM_CHARS = re.compile(r"[^a-z0-9_-]")


class MemoryPathError(ValueError):
    """A configured memory path resolves outside the project directory."""


@dataclass(frozen=True, slots=True)
class MemoryPathPolicyInput:
    project_dir: str | Path
    platform: str
    default_relative_path: str = DEFAULT_MEMORY_PATH
    legacy_relative_paths: Sequence[str] = field(default_factory=tuple)
    platform_relative_path: str | None = None
    platform_opt_in: bool = False


@dataclass(frozen=True, slots=True)
class MigrationSuggestion:
    from_path: Path
    to_path: Path


@dataclass(frozen=True, slots=True)
class MemoryPathPolicyResult:
    mode: MemoryPathMode
    memory_path: Path
    canonical_path: Path
    migration_suggestion: MigrationSuggestion | None = None


def safe_platform_key(platform: str) -> str:
    normalized = _UNSAFE_PLATFORM_CHARS.sub("-", platform.strip().lower()).strip("-")
    return normalized or "unknown"


def default_platform_relative_path(platform: str) -> str:
    return f".agent-brain/mind-{safe_platform_key(platform)}.sqlite"


def resolve_inside_project(project_dir: str | Path, candidate: str) -> Path:
    """Resolve ``candidate`` against the project root.

    Absolute paths are taken as configured. Relative paths must not climb out
    of the root.
    """

    if os.path.isabs(candidate):
        return Path(os.path.abspath(candidate))
    root = os.path.abspath(project_dir)
    resolved = os.path.abspath(os.path.join(root, candidate))
    rel = os.path.relpath(resolved, root)
    if rel == os.pardir or rel.startswith(os.pardir + os.sep):
        raise MemoryPathError(f"memory path {candidate!r} must stay inside {root}")
    return Path(resolved)


def resolve_memory_path_policy(policy: MemoryPathPolicyInput) -> MemoryPathPolicyResult:
    if not policy.platform_opt_in:
        default_path = resolve_inside_project(policy.project_dir, policy.default_relative_path)
        return MemoryPathPolicyResult(
            mode="legacy_first",
            memory_path=default_path,
            canonical_path=default_path,
        )

    relative_path = policy.platform_relative_path or default_platform_relative_path(
        policy.platform
    )
    canonical_path = resolve_inside_project(policy.project_dir, relative_path)
    if canonical_path.exists():
        return MemoryPathPolicyResult(
            mode="platform_opt_in",
            memory_path=canonical_path,
            canonical_path=canonical_path,
        )

    fallbacks = [policy.default_relative_path, *policy.legacy_relative_paths]
    for fallback in dict.fromkeys(fallbacks):
        fallback_path = resolve_inside_project(policy.project_dir, fallback)
        if fallback_path == canonical_path or not fallback_path.exists():
            continue
        return MemoryPathPolicyResult(
            mode="platform_opt_in",
            memory_path=fallback_path,
            canonical_path=canonical_path,
            migration_suggestion=MigrationSuggestion(
                from_path=fallback_path, to_path=canonical_path
            ),
        )

    return MemoryPathPolicyResult(
        mode="platform_opt_in",
        memory_path=canonical_path,
        canonical_path=canonical_path,
    )


def policy_input_from_config(
    project_dir: str | Path,
    platform: str,
    *,
    memory_path: str = DEFAULT_MEMORY_PATH,
    platform_opt_in: bool = False,
    platform_memory_path: str | None = None,
) -> MemoryPathPolicyInput:
    # Older installs only exist for the stock default path.
    legacy = LEGACY_MEMORY_PATHS if memory_path == DEFAULT_MEMORY_PATH else ()
    return MemoryPathPolicyInput(
        project_dir=project_dir,
        platform=platform,
        default_relative_path=memory_path,
        legacy_relative_paths=legacy,
        platform_relative_path=platform_memory_path,
        platform_opt_in=platform_opt_in,
    )


def display_path(project_dir: str | Path, path: Path) -> str:
    try:
        rel = os.path.relpath(path, os.path.abspath(project_dir))
    except ValueError:
        return path.name
    if rel == os.curdir:
        return path.name
    if rel.startswith(os.pardir):
        return str(path)
    return rel


def build_migration_command(project_dir: str | Path, suggestion: MigrationSuggestion) -> str:
    from_display = display_path(project_dir, suggestion.from_path)
    to_display = display_path(project_dir, suggestion.to_path)
    target_dir = os.path.dirname(to_display) or "."
    return (
        f"mkdir -p {shlex.quote(target_dir)} && "
        f"mv {shlex.quote(from_display)} {shlex.quote(to_display)}"
    )
