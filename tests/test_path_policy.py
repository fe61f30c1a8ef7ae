from pathlib import Path

import pytest

from agent_brain.platforms.path_policy import (
    MemoryPathError,
    MemoryPathPolicyInput,
    MigrationSuggestion,
    build_migration_command,
    default_platform_relative_path,
    policy_input_from_config,
    resolve_memory_path_policy,
    safe_platform_key,
)


def _touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x")
    return path


def test_legacy_first_uses_default_path_without_probing(project_dir: Path) -> None:
    _touch(project_dir / ".claude" / "mind.sqlite")
    result = resolve_memory_path_policy(
        MemoryPathPolicyInput(
            project_dir=project_dir,
            platform="claude",
            legacy_relative_paths=(".claude/mind.sqlite",),
        )
    )
    assert result.mode == "legacy_first"
    assert result.memory_path == project_dir / ".agent-brain" / "mind.sqlite"
    assert result.canonical_path == result.memory_path
    assert result.migration_suggestion is None


def test_opt_in_uses_platform_path(project_dir: Path) -> None:
    result = resolve_memory_path_policy(
        MemoryPathPolicyInput(project_dir=project_dir, platform="OpenCode", platform_opt_in=True)
    )
    assert result.mode == "platform_opt_in"
    assert result.memory_path == project_dir / ".agent-brain" / "mind-opencode.sqlite"
    assert result.migration_suggestion is None


def test_opt_in_prefers_existing_canonical_file(project_dir: Path) -> None:
    canonical = _touch(project_dir / ".agent-brain" / "mind-claude.sqlite")
    _touch(project_dir / ".agent-brain" / "mind.sqlite")
    result = resolve_memory_path_policy(
        MemoryPathPolicyInput(project_dir=project_dir, platform="claude", platform_opt_in=True)
    )
    assert result.memory_path == canonical
    assert result.migration_suggestion is None


def test_opt_in_falls_back_to_legacy_file_with_migration(project_dir: Path) -> None:
    legacy = _touch(project_dir / ".claude" / "mind.sqlite")
    result = resolve_memory_path_policy(
        policy_input_from_config(project_dir, "claude", platform_opt_in=True)
    )
    canonical = project_dir / ".agent-brain" / "mind-claude.sqlite"
    assert result.memory_path == legacy
    assert result.canonical_path == canonical
    assert result.migration_suggestion == MigrationSuggestion(from_path=legacy, to_path=canonical)


def test_opt_in_probes_default_before_legacy(project_dir: Path) -> None:
    default = _touch(project_dir / ".agent-brain" / "mind.sqlite")
    _touch(project_dir / ".claude" / "mind.sqlite")
    result = resolve_memory_path_policy(
        policy_input_from_config(project_dir, "claude", platform_opt_in=True)
    )
    assert result.memory_path == default


def test_explicit_platform_path_is_honored(project_dir: Path) -> None:
    result = resolve_memory_path_policy(
        MemoryPathPolicyInput(
            project_dir=project_dir,
            platform="claude",
            platform_opt_in=True,
            platform_relative_path="memory/custom.sqlite",
        )
    )
    assert result.canonical_path == project_dir / "memory" / "custom.sqlite"


def test_relative_traversal_is_rejected(project_dir: Path) -> None:
    with pytest.raises(MemoryPathError):
        resolve_memory_path_policy(
            MemoryPathPolicyInput(
                project_dir=project_dir,
                platform="claude",
                default_relative_path="../outside.sqlite",
            )
        )
    with pytest.raises(MemoryPathError):
        resolve_memory_path_policy(
            MemoryPathPolicyInput(
                project_dir=project_dir,
                platform="claude",
                platform_opt_in=True,
                platform_relative_path="nested/../../escape.sqlite",
            )
        )


def test_absolute_paths_are_used_as_given(project_dir: Path, tmp_path: Path) -> None:
    target = tmp_path / "elsewhere" / "mind.sqlite"
    result = resolve_memory_path_policy(
        MemoryPathPolicyInput(
            project_dir=project_dir, platform="claude", default_relative_path=str(target)
        )
    )
    assert result.memory_path == target


@pytest.mark.parametrize(
    ("platform", "expected"),
    [
        ("claude", "claude"),
        ("Open Code!", "open-code"),
        ("my_host-2", "my_host-2"),
        ("../evil", "evil"),
        ("***", "unknown"),
    ],
)
def test_safe_platform_key(platform: str, expected: str) -> None:
    assert safe_platform_key(platform) == expected
    assert default_platform_relative_path(platform) == f".agent-brain/mind-{expected}.sqlite"


def test_custom_memory_path_has_no_legacy_fallbacks(project_dir: Path) -> None:
    policy = policy_input_from_config(project_dir, "claude", memory_path="data/mind.sqlite")
    assert tuple(policy.legacy_relative_paths) == ()


def test_build_migration_command_quotes_paths(project_dir: Path) -> None:
    suggestion = MigrationSuggestion(
        from_path=project_dir / ".claude" / "mind.sqlite",
        to_path=project_dir / ".agent-brain" / "mind-my host.sqlite",
    )
    command = build_migration_command(project_dir, suggestion)
    assert command == (
        "mkdir -p .agent-brain && mv .claude/mind.sqlite '.agent-brain/mind-my host.sqlite'"
    )
