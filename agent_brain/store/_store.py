from __future__ import annotations

import logging
import sqlite3
import time
from pathlib import Path
from typing import Any

from . import db
from . import search as store_search
from .types import FrameRecord, StoreError, StoreOpenError

logger = logging.getLogger(__name__)

PREVIEW_TEXT_CHARS = 400


class FrameStore:
    """Single-file SQLite frame store with a lexical FTS5 index."""

    def __init__(self, path: Path, conn: sqlite3.Connection):
        self.path = str(path)
        self.conn = conn

    def put(self, record: FrameRecord) -> str:
        title = record.get("title") or ""
        text = record.get("text") or ""
        if not isinstance(title, str) or not isinstance(text, str):
            raise StoreError("frame title and text must be strings")
        label = record.get("label")
        labels = [label] if label else []
        labels.extend(item for item in record.get("labels") or [] if item not in labels)
        tags = [str(tag) for tag in record.get("tags") or []]
        metadata = record.get("metadata") or {}
        cur = self.conn.execute(
            """
            INSERT INTO frames(
                title, label, labels_json, tags_json, tags_text, text,
                metadata_json, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                title,
                label,
                db.to_json(labels),
                db.to_json(tags),
                " ".join(tags),
                text,
                db.to_json(metadata),
                time.time(),
            ),
        )
        self.conn.commit()
        return str(cur.lastrowid)

    def find(self, query: str, *, k: int = 10, mode: str = "lex") -> dict[str, Any]:
        if mode not in {"lex", "auto"}:
            logger.debug("find mode %s not supported, using lexical", mode)
        return store_search.find(self.conn, query, k=k)

    def ask(self, question: str, *, k: int = 5, mode: str = "lex") -> dict[str, Any]:
        hits = self.find(question, k=k, mode=mode)["hits"]
        return {"answer": store_search.render_answer(hits), "hits": hits}

    def timeline(self, *, limit: int = 50, reverse: bool = False) -> list[dict[str, Any]]:
        order = "DESC" if reverse else "ASC"
        rows = self.conn.execute(
            f"SELECT * FROM frames ORDER BY created_at {order}, id {order} LIMIT ?",
            (max(limit, 0),),
        ).fetchall()
        return [
            {
                "frame_id": row["id"],
                "timestamp": int(row["created_at"]),
                "preview": _preview(row),
            }
            for row in rows
        ]

    def get_frame_info(self, frame_id: str | int) -> dict[str, Any]:
        try:
            key = int(frame_id)
        except (TypeError, ValueError) as exc:
            raise StoreError(f"invalid frame id: {frame_id!r}") from exc
        row = self.conn.execute("SELECT * FROM frames WHERE id = ?", (key,)).fetchone()
        if row is None:
            raise StoreError(f"frame {key} not found")
        return {
            "frame_id": row["id"],
            "title": row["title"],
            "labels": db.from_json(row["labels_json"]) or [],
            "tags": db.from_json(row["tags_json"]) or [],
            "metadata": db.from_json(row["metadata_json"]) or {},
            "timestamp": int(row["created_at"]),
        }

    def stats(self) -> dict[str, Any]:
        row = self.conn.execute("SELECT COUNT(*) AS total FROM frames").fetchone()
        kind = self.conn.execute("SELECT value FROM store_meta WHERE key = 'kind'").fetchone()
        path = Path(self.path)
        return {
            "frame_count": int(row["total"]) if row else 0,
            "size_bytes": path.stat().st_size if path.exists() else 0,
            "kind": kind["value"] if kind else None,
        }

    def close(self) -> None:
        self.conn.close()


def _preview(row: sqlite3.Row) -> str:
    labels = db.from_json(row["labels_json"]) or []
    tags = db.from_json(row["tags_json"]) or []
    lines = [f"title: {row['title']}"]
    if labels:
        lines.append(f"labels: {' '.join(labels)}")
    if tags:
        lines.append(f"tags: {' '.join(tags)}")
    lines.append(row["text"][:PREVIEW_TEXT_CHARS])
    return "\n".join(lines)


def create_store(path: str | Path, *, kind: str = "basic") -> FrameStore:
    target = Path(path)
    if target.exists():
        target.unlink()
    conn = db.connect(target)
    db.initialize_schema(conn, kind)
    return FrameStore(target, conn)


def open_store(path: str | Path) -> FrameStore:
    """Open an existing store.

    Failures that mean the file is not a readable store raise
    ``StoreOpenError`` carrying the engine message.
    """

    target = Path(path)
    if not target.exists():
        raise StoreOpenError(f"store not found: {target}")
    try:
        conn = db.connect(target)
    except sqlite3.OperationalError:
        raise
    except sqlite3.DatabaseError as exc:
        raise StoreOpenError(str(exc)) from exc
    try:
        version = db.schema_version(conn)
        if version > db.SCHEMA_VERSION:
            raise StoreOpenError(
                f"store version mismatch: found {version}, supported {db.SCHEMA_VERSION}"
            )
        if not db.has_frames_table(conn):
            raise StoreOpenError("Invalid store: frames table missing")
        conn.execute("SELECT COUNT(*) FROM frames_fts").fetchone()
    except sqlite3.OperationalError:
        conn.close()
        raise
    except sqlite3.DatabaseError as exc:
        conn.close()
        raise StoreOpenError(str(exc)) from exc
    except StoreOpenError:
        conn.close()
        raise
    return FrameStore(target, conn)
