"""Shrink large tool outputs to a structural digest before storing them."""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

COMPRESSION_THRESHOLD = 3000
TARGET_COMPRESSED_SIZE = 2000
COMPRESSED_NOTICE = "\n... (compressed)"

_IMPORT_PATTERNS = (
    re.compile(r"^\s*import\s+([\w.]+)", re.MULTILINE),
    re.compile(r"^\s*from\s+([\w.]+)\s+import", re.MULTILINE),
    re.compile(r"import\s+(?:\{[^}]*\}|\w+)\s+from\s+['\"]([^'\"]+)['\"]"),
    re.compile(r"require\s*\(['\"]([^'\"]+)['\"]\)"),
)
_FUNCTION_PATTERNS = (
    re.compile(r"(?:async\s+)?def\s+(\w+)"),
    re.compile(r"(?:async\s+)?function\s+(\w+)"),
    re.compile(r"(?:const|let)\s+(\w+)\s*=\s*(?:async\s+)?\([^)]*\)\s*=>"),
    re.compile(r"\bfn\s+(\w+)"),
    re.compile(r"\bfunc\s+(\w+)"),
)
_CLASS_PATTERNS = (
    re.compile(r"\bclass\s+(\w+)"),
    re.compile(r"\bstruct\s+(\w+)"),
    re.compile(r"\binterface\s+(\w+)"),
)
_MARKER_WORDS = ("TODO", "FIXME", "HACK", "XXX", "BUG")
_ERROR_WORDS = ("error", "failed", "exception", "warning")
_SUCCESS_WORDS = ("success", "passed", "completed", "done")


@dataclass(frozen=True)
class CompressionResult:
    text: str
    was_compressed: bool
    original_size: int

    @property
    def saved_percent(self) -> float:
        if not self.original_size:
            return 0.0
        return round((self.original_size - len(self.text)) / self.original_size * 100, 1)


def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(value for value in values if value))


def _find_all(patterns: tuple[re.Pattern[str], ...], text: str) -> list[str]:
    found: list[str] = []
    for pattern in patterns:
        found.extend(pattern.findall(text))
    return _unique(found)


def _limited(values: list[str], limit: int) -> str:
    shown = ", ".join(values[:limit])
    if len(values) > limit:
        shown += f" (+{len(values) - limit} more)"
    return shown


def _file_name(tool_input: Mapping[str, Any]) -> str:
    path = tool_input.get("file_path") or tool_input.get("filePath") or ""
    return str(path).rsplit("/", 1)[-1] or "file"


def _compress_read(tool_input: Mapping[str, Any], output: str) -> str:
    lines = output.split("\n")
    parts = [f"File: {_file_name(tool_input)} ({len(lines)} lines)"]
    imports = _find_all(_IMPORT_PATTERNS, output)
    if imports:
        parts.append(f"Imports: {_limited(imports, 10)}")
    functions = _find_all(_FUNCTION_PATTERNS, output)
    if functions:
        parts.append(f"Functions: {_limited(functions, 10)}")
    classes = _find_all(_CLASS_PATTERNS, output)
    if classes:
        parts.append(f"Classes: {_limited(classes, 10)}")
    markers = [
        line.strip()[:100] for line in lines if any(word in line for word in _MARKER_WORDS)
    ]
    if markers:
        parts.append(f"Markers: {'; '.join(markers[:5])}")
    parts.extend(["--- First 10 lines ---", *lines[:10], "--- Last 5 lines ---", *lines[-5:]])
    return "\n".join(parts)


def _compress_bash(tool_input: Mapping[str, Any], output: str) -> str:
    command = str(tool_input.get("command") or "command").split("\n", 1)[0][:100]
    lines = output.split("\n")
    errors = [line for line in lines if any(word in line.lower() for word in _ERROR_WORDS)]
    successes = [
        line for line in lines if any(word in line.lower() for word in _SUCCESS_WORDS)
    ]
    parts = [f"Command: {command}"]
    if errors:
        parts.extend([f"Errors ({len(errors)}):", *errors[:10]])
    if successes:
        parts.extend(["Success indicators:", *successes[:5]])
    parts.append(f"Output: {len(lines)} lines total")
    if len(lines) > 20:
        parts.extend(["--- First 10 lines ---", *lines[:10], "--- Last 5 lines ---", *lines[-5:]])
    else:
        parts.extend(["--- Full output ---", *lines])
    return "\n".join(parts)


def _compress_grep(tool_input: Mapping[str, Any], output: str) -> str:
    pattern = str(tool_input.get("pattern") or "pattern")[:50]
    lines = [line for line in output.split("\n") if line]
    files = _unique([line.split(":", 1)[0] for line in lines if ":" in line])
    parts = [f'Grep: "{pattern}"', f"Found in {len(files)} files, {len(lines)} matches"]
    if files:
        parts.append(f"Files: {_limited(files, 15)}")
    parts.extend(["--- Top matches ---", *lines[:10]])
    if len(lines) > 10:
        parts.append(f"... and {len(lines) - 10} more matches")
    return "\n".join(parts)


def _compress_glob(tool_input: Mapping[str, Any], output: str) -> str:
    pattern = str(tool_input.get("pattern") or "pattern")[:50]
    try:
        parsed = json.loads(output)
    except json.JSONDecodeError:
        parsed = None
    if isinstance(parsed, dict) and isinstance(parsed.get("filenames"), list):
        files = [str(name) for name in parsed["filenames"]]
    else:
        files = [line for line in output.split("\n") if line]
    by_dir: dict[str, int] = {}
    for name in files:
        directory = name.rsplit("/", 1)[0] if "/" in name else "/"
        by_dir[directory] = by_dir.get(directory, 0) + 1
    parts = [f'Glob: "{pattern}"', f"Found {len(files)} files in {len(by_dir)} directories"]
    parts.append("--- Top directories ---")
    for directory, count in sorted(by_dir.items(), key=lambda item: -item[1])[:5]:
        parts.append(f"{'/'.join(directory.split('/')[-3:])}/ ({count} files)")
    parts.append("--- Sample files ---")
    parts.append(", ".join(name.rsplit("/", 1)[-1] for name in files[:15]))
    return "\n".join(parts)


def _compress_edit(tool_input: Mapping[str, Any], output: str) -> str:
    return "\n".join([f"Edited: {_file_name(tool_input)}", output[:500]])


def _compress_generic(tool_input: Mapping[str, Any], output: str) -> str:
    lines = output.split("\n")
    if len(lines) <= 30:
        return output
    return "\n".join(
        [
            f"Output: {len(lines)} lines",
            "--- First 15 lines ---",
            *lines[:15],
            "--- Last 10 lines ---",
            *lines[-10:],
        ]
    )


_COMPRESSORS: dict[str, Callable[[Mapping[str, Any], str], str]] = {
    "Read": _compress_read,
    "Bash": _compress_bash,
    "Grep": _compress_grep,
    "Glob": _compress_glob,
    "Edit": _compress_edit,
    "Write": _compress_edit,
}


def truncate_to_target(text: str, target: int = TARGET_COMPRESSED_SIZE) -> str:
    if len(text) <= target:
        return text
    return text[: target - len(COMPRESSED_NOTICE)] + COMPRESSED_NOTICE


def compress_tool_output(
    tool_name: str, tool_input: Mapping[str, Any] | None, output: str
) -> CompressionResult:
    original_size = len(output)
    if original_size <= COMPRESSION_THRESHOLD:
        return CompressionResult(text=output, was_compressed=False, original_size=original_size)
    compressor = _COMPRESSORS.get(tool_name, _compress_generic)
    compressed = compressor(tool_input or {}, output)
    return CompressionResult(
        text=truncate_to_target(compressed),
        was_compressed=True,
        original_size=original_size,
    )
