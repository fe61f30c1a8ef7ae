from __future__ import annotations

from .adapters import claude_adapter, create_adapter, opencode_adapter
from .contract import (
    SUPPORTED_ADAPTER_CONTRACT_MAJOR,
    ContractValidationResult,
    PlatformAdapter,
    parse_contract_major,
    validate_adapter_contract_version,
)
from .detector import detect_platform, detect_platform_from_env
from .diagnostics import (
    AdapterDiagnostic,
    DiagnosticStore,
    create_redacted_diagnostic,
    resolve_diagnostic_path,
)
from .events import PlatformEvent, PlatformProjectContext
from .identity import ProjectIdentityResolution, resolve_project_identity_key
from .path_policy import (
    MemoryPathError,
    MemoryPathPolicyInput,
    MemoryPathPolicyResult,
    MigrationSuggestion,
    build_migration_command,
    resolve_memory_path_policy,
)
from .pipeline import Accepted, PipelineResult, Skipped, process_platform_event
from .registry import AdapterRegistry, ReadonlyAdapterRegistry


def build_default_registry() -> AdapterRegistry:
    registry = AdapterRegistry()
    registry.register(claude_adapter)
    registry.register(opencode_adapter)
    return registry


__all__ = [
    "SUPPORTED_ADAPTER_CONTRACT_MAJOR",
    "Accepted",
    "AdapterDiagnostic",
    "AdapterRegistry",
    "ContractValidationResult",
    "DiagnosticStore",
    "MemoryPathError",
    "MemoryPathPolicyInput",
    "MemoryPathPolicyResult",
    "MigrationSuggestion",
    "PipelineResult",
    "PlatformAdapter",
    "PlatformEvent",
    "PlatformProjectContext",
    "ProjectIdentityResolution",
    "ReadonlyAdapterRegistry",
    "Skipped",
    "build_default_registry",
    "build_migration_command",
    "claude_adapter",
    "create_adapter",
    "create_redacted_diagnostic",
    "detect_platform",
    "detect_platform_from_env",
    "opencode_adapter",
    "parse_contract_major",
    "process_platform_event",
    "resolve_diagnostic_path",
    "resolve_memory_path_policy",
    "resolve_project_identity_key",
    "validate_adapter_contract_version",
]
