from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..types import HookInput
    from .events import PlatformEvent

SUPPORTED_ADAPTER_CONTRACT_MAJOR = 1

SEMVER_PATTERN = re.compile(r"^(\d+)\.(\d+)\.(\d+)(?:[-+].*)?$")


@dataclass(frozen=True, slots=True)
class ContractValidationResult:
    compatible: bool
    supported_major: int
    adapter_major: int | None
    reason: str | None = None


def parse_contract_major(version: str) -> int | None:
    match = SEMVER_PATTERN.match(version.strip())
    if not match:
        return None
    return int(match.group(1))


def validate_adapter_contract_version(
    version: str,
    supported_major: int = SUPPORTED_ADAPTER_CONTRACT_MAJOR,
) -> ContractValidationResult:
    adapter_major = parse_contract_major(version) if isinstance(version, str) else None
    if adapter_major is None:
        return ContractValidationResult(
            compatible=False,
            supported_major=supported_major,
            adapter_major=None,
            reason="invalid_contract_version",
        )
    if adapter_major != supported_major:
        return ContractValidationResult(
            compatible=False,
            supported_major=supported_major,
            adapter_major=adapter_major,
            reason="incompatible_contract_major",
        )
    return ContractValidationResult(
        compatible=True,
        supported_major=supported_major,
        adapter_major=adapter_major,
    )


class PlatformAdapter(Protocol):
    platform: str
    contract_version: str

    def normalize_session_start(self, hook_input: HookInput) -> PlatformEvent: ...

    def normalize_tool_observation(self, hook_input: HookInput) -> PlatformEvent | None: ...

    def normalize_session_stop(self, hook_input: HookInput) -> PlatformEvent: ...
