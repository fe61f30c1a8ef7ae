from __future__ import annotations

import datetime as dt
import math
import secrets
import time


def generate_id() -> str:
    return secrets.token_hex(8)


def now_ms() -> int:
    return int(time.time() * 1000)


def estimate_tokens(text: str) -> int:
    # Rough 4-chars-per-token heuristic, not a tokenizer.
    return math.ceil(len(text) / 4)


def format_timestamp(ts_ms: int, *, now: float | None = None) -> str:
    if ts_ms <= 0:
        return "unknown"
    current_ms = (now if now is not None else time.time()) * 1000
    diff_ms = current_ms - ts_ms
    diff_mins = int(diff_ms // 60_000)
    diff_hours = int(diff_ms // 3_600_000)
    diff_days = int(diff_ms // 86_400_000)
    if diff_mins < 1:
        return "just now"
    if diff_mins < 60:
        return f"{diff_mins}m ago"
    if diff_hours < 24:
        return f"{diff_hours}h ago"
    if diff_days < 7:
        return f"{diff_days}d ago"
    return dt.datetime.fromtimestamp(ts_ms / 1000, tz=dt.UTC).date().isoformat()


def format_bytes(size: int) -> str:
    if size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB"]
    index = min(int(math.log(size, 1024)), len(units) - 1)
    value = size / (1024**index)
    return f"{value:.1f} {units[index]}".replace(".0 ", " ")
