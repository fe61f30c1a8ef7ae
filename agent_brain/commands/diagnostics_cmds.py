from __future__ import annotations

import json
from pathlib import Path

import typer
from rich import print

from ..platforms import DiagnosticStore, resolve_diagnostic_path
from ..utils import format_timestamp


def diagnostics_cmd(*, project_dir: Path, as_json: bool) -> None:
    """List unexpired adapter diagnostics for the project."""

    store = DiagnosticStore(resolve_diagnostic_path(project_dir))
    records = store.list()
    if as_json:
        typer.echo(json.dumps([record.to_dict() for record in records], indent=2))
        return
    if not records:
        print("No diagnostics recorded.")
        return
    for record in records:
        fields = f" fields={','.join(record.field_names)}" if record.field_names else ""
        print(
            f"- {format_timestamp(record.timestamp)} {record.platform} "
            f"{record.severity}: {record.error_type}{fields}"
        )
