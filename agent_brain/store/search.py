from __future__ import annotations

import datetime as dt
import re
import sqlite3
from typing import Any

from . import db

_FTS_OPERATORS = {"or", "and", "not", "near"}


def _expand_query(query: str) -> str:
    tokens = re.findall(r"\w+", query)
    tokens = [token for token in tokens if token.lower() not in _FTS_OPERATORS]
    if not tokens:
        return ""
    if len(tokens) == 1:
        return f'"{tokens[0]}"'
    return " OR ".join(f'"{token}"' for token in tokens)


def _iso(created_at: float) -> str:
    return dt.datetime.fromtimestamp(created_at, tz=dt.UTC).isoformat()


def row_to_hit(row: sqlite3.Row) -> dict[str, Any]:
    labels = db.from_json(row["labels_json"]) or []
    return {
        "frame_id": row["id"],
        "title": row["title"],
        "text": row["text"],
        "snippet": row["snippet"],
        "score": float(row["score"]),
        "label": row["label"],
        "labels": labels,
        "tags": db.from_json(row["tags_json"]) or [],
        "metadata": db.from_json(row["metadata_json"]) or {},
        "timestamp": int(row["created_at"]),
        "created_at": _iso(row["created_at"]),
    }


def find(conn: sqlite3.Connection, query: str, *, k: int = 10) -> dict[str, Any]:
    expanded_query = _expand_query(query)
    if not expanded_query or k <= 0:
        return {"hits": []}
    sql = """
        SELECT frames.*,
            -bm25(frames_fts, 1.0, 1.0, 0.25) AS score,
            snippet(frames_fts, 1, '', '', '...', 24) AS snippet
        FROM frames_fts
        JOIN frames ON frames.id = frames_fts.rowid
        WHERE frames_fts MATCH ?
        ORDER BY score DESC, frames.created_at DESC
        LIMIT ?
    """
    rows = conn.execute(sql, (expanded_query, k)).fetchall()
    return {"hits": [row_to_hit(row) for row in rows]}


def render_answer(hits: list[dict[str, Any]]) -> str | None:
    if not hits:
        return None
    lines = []
    for hit in hits:
        excerpt = (hit.get("snippet") or hit.get("text") or "").strip()
        lines.append(f"- {hit.get('title', '')}: {excerpt}".rstrip(": "))
    return "\n".join(lines)
