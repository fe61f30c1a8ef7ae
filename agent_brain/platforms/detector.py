from __future__ import annotations

import os
from collections.abc import Mapping

from ..config import PLATFORM_ENV

DEFAULT_PLATFORM = "claude"


def normalize_platform(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    normalized = value.strip().lower()
    return normalized or None


def detect_platform_from_env(environ: Mapping[str, str] | None = None) -> str:
    env = os.environ if environ is None else environ
    explicit = normalize_platform(env.get(PLATFORM_ENV))
    if explicit:
        return explicit
    if env.get("OPENCODE") == "1" or env.get("OPENCODE_SESSION") == "1":
        return "opencode"
    return DEFAULT_PLATFORM


def detect_platform(
    hook_input: Mapping[str, object], environ: Mapping[str, str] | None = None
) -> str:
    explicit = normalize_platform(hook_input.get("platform"))
    if explicit:
        return explicit
    return detect_platform_from_env(environ)
