from __future__ import annotations

import json
import os
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any

DEFAULT_CONFIG_PATH = Path("~/.config/agent-brain/config.json").expanduser()
DEFAULT_MEMORY_PATH = ".agent-brain/mind.sqlite"
LEGACY_MEMORY_PATHS: tuple[str, ...] = (".claude/mind.sqlite",)

CONFIG_ENV_OVERRIDES = {
    "memory_path": "AGENT_BRAIN_MEMORY_PATH",
    "max_context_observations": "AGENT_BRAIN_MAX_CONTEXT_OBSERVATIONS",
    "max_context_tokens": "AGENT_BRAIN_MAX_CONTEXT_TOKENS",
    "debug": "AGENT_BRAIN_DEBUG",
    "lock_timeout_s": "AGENT_BRAIN_LOCK_TIMEOUT_S",
    "platform_path_opt_in": "AGENT_BRAIN_PLATFORM_PATH_OPT_IN",
    "platform_memory_path": "AGENT_BRAIN_PLATFORM_MEMORY_PATH",
}

PLATFORM_ENV = "AGENT_BRAIN_PLATFORM"
DIAGNOSTIC_PATH_ENV = "AGENT_BRAIN_DIAGNOSTIC_PATH"
PROJECT_DIR_ENVS = ("CLAUDE_PROJECT_DIR", "OPENCODE_PROJECT_DIR")

_INT_FIELDS = {"max_context_observations", "max_context_tokens"}
_FLOAT_FIELDS = {"lock_timeout_s"}
_BOOL_FIELDS = {"auto_compress", "debug", "platform_path_opt_in"}


def get_config_path(path: Path | None = None) -> Path:
    candidate = path or Path(os.getenv("AGENT_BRAIN_CONFIG", DEFAULT_CONFIG_PATH))
    return candidate.expanduser()


def read_config_file(path: Path | None = None) -> dict[str, Any]:
    config_path = get_config_path(path)
    if not config_path.exists():
        return {}
    raw = config_path.read_text()
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError("invalid config json") from exc
    if not isinstance(data, dict):
        raise ValueError("config must be an object")
    return data


def get_env_overrides() -> dict[str, str]:
    overrides: dict[str, str] = {}
    for key, env_var in CONFIG_ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value is not None:
            overrides[key] = value
    return overrides


def resolve_project_dir(cwd: str | None = None) -> Path:
    if cwd:
        return Path(cwd)
    for env_var in PROJECT_DIR_ENVS:
        value = os.getenv(env_var)
        if value:
            return Path(value)
    return Path.cwd()


@dataclass
class AgentBrainConfig:
    # Relative paths resolve against the project directory.
    memory_path: str = DEFAULT_MEMORY_PATH
    max_context_observations: int = 20
    max_context_tokens: int = 2000
    auto_compress: bool = True
    debug: bool = False
    lock_timeout_s: float = 30.0
    platform_path_opt_in: bool = False
    platform_memory_path: str | None = None


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    if value.lower() in {"1", "true", "yes", "on"}:
        return True
    if value.lower() in {"0", "false", "off", "no"}:
        return False
    return default


def _parse_int(value: object, default: int, *, key: str) -> int:
    if value is None:
        return default
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid int for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default


def _parse_float(value: object, default: float, *, key: str) -> float:
    if value is None:
        return default
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid float for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default


def _coerce_bool(value: object, default: bool, *, key: str) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        return _parse_bool(value, default)
    warnings.warn(f"Invalid bool for {key}: {value!r}", RuntimeWarning, stacklevel=2)
    return default


def load_config(path: Path | None = None) -> AgentBrainConfig:
    cfg = AgentBrainConfig()
    try:
        cfg = _apply_dict(cfg, read_config_file(path))
    except ValueError as exc:
        warnings.warn(
            f"Ignoring config file {get_config_path(path)}: {exc}", RuntimeWarning, stacklevel=2
        )
    cfg = _apply_dict(cfg, get_env_overrides())
    return cfg


def _apply_dict(cfg: AgentBrainConfig, data: dict[str, Any]) -> AgentBrainConfig:
    for key, value in data.items():
        if not hasattr(cfg, key):
            continue
        if key in _INT_FIELDS:
            setattr(cfg, key, _parse_int(value, getattr(cfg, key), key=key))
            continue
        if key in _FLOAT_FIELDS:
            setattr(cfg, key, _parse_float(value, getattr(cfg, key), key=key))
            continue
        if key in _BOOL_FIELDS:
            setattr(cfg, key, _coerce_bool(value, getattr(cfg, key), key=key))
            continue
        if key == "platform_memory_path":
            text = str(value).strip() if value is not None else ""
            cfg.platform_memory_path = text or None
            continue
        setattr(cfg, key, value)
    return cfg
