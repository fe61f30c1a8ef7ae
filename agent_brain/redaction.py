from __future__ import annotations

import re

REDACTED = "[REDACTED]"

REDACTION_PATTERNS = [
    re.compile(r"api[_-]?key\s*[:=]\s*['\"]?[A-Za-z0-9_-]{20,}", re.IGNORECASE),
    re.compile(r"(?:password|passwd|secret|token)\s*[:=]\s*['\"]?[^\s'\"]{8,}", re.IGNORECASE),
    re.compile(r"sk-[A-Za-z0-9_-]{10,}"),
    re.compile(r"xox[baprs]-[A-Za-z0-9-]{10,}", re.IGNORECASE),
    re.compile(r"gh[pousr]_[A-Za-z0-9]{20,}"),
    re.compile(r"AKIA[0-9A-Z]{16}"),
    re.compile(r"Bearer\s+[A-Za-z0-9._~+/-]{20,}=*"),
    re.compile(
        r"-----BEGIN [A-Z ]*PRIVATE KEY-----.*?-----END [A-Z ]*PRIVATE KEY-----",
        re.DOTALL,
    ),
]

PRIVATE_BLOCK_RE = re.compile(r"<private>.*?</private>", re.DOTALL | re.IGNORECASE)

ANSI_ESCAPE_RE = re.compile(
    r"""
    \x1B
    (?:
        \] [^\x1B\x07]* (?:\x1B\\|\x07)
      | \[ [0-?]* [ -/]* [@-~]
      | [@-Z\\-_]
    )
    """,
    re.VERBOSE,
)


def redact(text: str) -> str:
    redacted = text
    for pattern in REDACTION_PATTERNS:
        redacted = pattern.sub(REDACTED, redacted)
    return redacted


def strip_ansi(text: str) -> str:
    return ANSI_ESCAPE_RE.sub("", text)


def strip_private(text: str) -> str:
    return PRIVATE_BLOCK_RE.sub("", text)


def sanitize_tool_output(text: str) -> str:
    """Clean tool output before it is written to memory."""

    if not text:
        return ""
    return redact(strip_private(strip_ansi(text)))
