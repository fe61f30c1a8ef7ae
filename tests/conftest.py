from __future__ import annotations

from pathlib import Path

import pytest

from agent_brain.config import (
    CONFIG_ENV_OVERRIDES,
    DIAGNOSTIC_PATH_ENV,
    PLATFORM_ENV,
    PROJECT_DIR_ENVS,
    AgentBrainConfig,
)


@pytest.fixture(autouse=True)
def _isolate_agent_brain_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("AGENT_BRAIN_CONFIG", str(tmp_path / "agent-brain-config.json"))
    for env_var in (
        *CONFIG_ENV_OVERRIDES.values(),
        PLATFORM_ENV,
        DIAGNOSTIC_PATH_ENV,
        *PROJECT_DIR_ENVS,
        "OPENCODE",
        "OPENCODE_SESSION",
    ):
        monkeypatch.delenv(env_var, raising=False)


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def config() -> AgentBrainConfig:
    return AgentBrainConfig(lock_timeout_s=5.0)
