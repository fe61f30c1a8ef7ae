from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from .contract import SUPPORTED_ADAPTER_CONTRACT_MAJOR, validate_adapter_contract_version
from .diagnostics import AdapterDiagnostic, DiagnosticStore, create_redacted_diagnostic
from .events import PlatformEvent
from .identity import ProjectIdentityResolution, resolve_project_identity_key

logger = logging.getLogger(__name__)

IDENTITY_FIELD_NAMES = ("platform_project_id", "canonical_path", "cwd")


@dataclass(frozen=True, slots=True)
class Accepted:
    project_identity_key: str
    identity: ProjectIdentityResolution

    skipped = False


@dataclass(frozen=True, slots=True)
class Skipped:
    reason: str
    diagnostic: AdapterDiagnostic

    skipped = True


PipelineResult = Accepted | Skipped


def skip_with_diagnostic(
    platform: str,
    error_type: str,
    field_names: Sequence[str] | None = None,
    *,
    diagnostics: DiagnosticStore | None = None,
) -> Skipped:
    logger.debug("skipping %s event: %s", platform, error_type)
    return Skipped(
        reason=error_type,
        diagnostic=create_redacted_diagnostic(
            platform=platform,
            error_type=error_type,
            field_names=field_names,
            severity="warning",
            store=diagnostics,
        ),
    )


def process_platform_event(
    event: PlatformEvent,
    *,
    diagnostics: DiagnosticStore | None = None,
    supported_major: int = SUPPORTED_ADAPTER_CONTRACT_MAJOR,
) -> PipelineResult:
    """Validate one normalized event and resolve the project it belongs to.

    Never raises for malformed events: a bad event comes back as ``Skipped``
    and the caller carries on with its session.
    """

    validation = validate_adapter_contract_version(event.contract_version, supported_major)
    if not validation.compatible:
        return skip_with_diagnostic(
            event.platform,
            validation.reason or "invalid_contract_version",
            ["contract_version"],
            diagnostics=diagnostics,
        )

    identity = resolve_project_identity_key(event.project_context)
    if not identity.key:
        return skip_with_diagnostic(
            event.platform,
            "missing_project_identity",
            IDENTITY_FIELD_NAMES,
            diagnostics=diagnostics,
        )

    return Accepted(project_identity_key=identity.key, identity=identity)
