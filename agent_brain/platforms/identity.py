from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

from .events import PlatformProjectContext

ProjectIdentitySource = Literal["platform_project_id", "canonical_path", "unresolved"]


@dataclass(frozen=True, slots=True)
class ProjectIdentityResolution:
    key: str | None
    source: ProjectIdentitySource
    canonical_path: str | None = None


def _non_empty(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def resolve_canonical_project_path(context: PlatformProjectContext) -> str | None:
    for candidate in (context.canonical_path, context.cwd):
        value = _non_empty(candidate)
        if value:
            return os.path.abspath(value)
    return None


def resolve_project_identity_key(context: PlatformProjectContext) -> ProjectIdentityResolution:
    project_id = _non_empty(context.platform_project_id)
    if project_id:
        return ProjectIdentityResolution(
            key=project_id,
            source="platform_project_id",
            canonical_path=resolve_canonical_project_path(context),
        )

    canonical_path = resolve_canonical_project_path(context)
    if canonical_path:
        return ProjectIdentityResolution(
            key=canonical_path,
            source="canonical_path",
            canonical_path=canonical_path,
        )

    return ProjectIdentityResolution(key=None, source="unresolved")
