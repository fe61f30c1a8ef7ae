from __future__ import annotations

from typing import Final, Literal

ObservationType = Literal[
    "discovery",
    "decision",
    "problem",
    "solution",
    "pattern",
    "warning",
    "success",
    "refactor",
    "bugfix",
    "feature",
]

OBSERVATION_TYPES: Final[tuple[ObservationType, ...]] = (
    "discovery",
    "decision",
    "problem",
    "solution",
    "pattern",
    "warning",
    "success",
    "refactor",
    "bugfix",
    "feature",
)

DEFAULT_OBSERVATION_TYPE: Final[ObservationType] = "discovery"


def normalize_observation_type(value: object) -> ObservationType | None:
    if not isinstance(value, str):
        return None
    normalized = value.strip().lower()
    if normalized in OBSERVATION_TYPES:
        return normalized  # type: ignore[return-value]
    return None


def validate_observation_type(value: str) -> ObservationType:
    normalized = normalize_observation_type(value)
    if normalized is not None:
        return normalized
    raise ValueError(
        f"Invalid observation type '{value}'. Allowed types: {', '.join(OBSERVATION_TYPES)}"
    )


def empty_type_counts() -> dict[ObservationType, int]:
    return {kind: 0 for kind in OBSERVATION_TYPES}
