from __future__ import annotations

import datetime as dt
import json
import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from ..config import AgentBrainConfig, load_config, resolve_project_dir
from ..locking import memory_lock
from ..observation_types import empty_type_counts, validate_observation_type
from ..platforms.detector import DEFAULT_PLATFORM
from ..platforms.path_policy import (
    MemoryPathPolicyResult,
    policy_input_from_config,
    resolve_memory_path_policy,
)
from ..store import RecordStore, StoreError
from ..types import InjectedContext, MemorySearchResult, MindStats, Observation, SessionSummary
from ..utils import estimate_tokens, generate_id, now_ms
from . import reconcile
from .recovery import MAX_STORE_FILE_SIZE_BYTES, open_store_with_recovery

logger = logging.getLogger(__name__)

FRAME_INFO_BATCH_SIZE = 20
SEARCH_MODE = "lex"
SUMMARY_QUERY = "Session Summary"
CONTEXT_SUMMARY_LIMIT = 5
MAX_KEY_DECISIONS = 20
MAX_FILES_MODIFIED = 50
NO_ANSWER = "No relevant memories found."


class Mind:
    """One project's memory, backed by a single record store file.

    Every store call runs under the cross-process memory lock.
    """

    def __init__(
        self,
        store: RecordStore,
        config: AgentBrainConfig,
        policy: MemoryPathPolicyResult,
        *,
        session_id: str | None = None,
    ) -> None:
        self.store = store
        self.config = config
        self.policy = policy
        self.session_id = session_id or generate_id()
        self.session_start_time = now_ms()
        self.session_observation_count = 0
        self._cached_stats: MindStats | None = None
        self._cached_stats_frame_count = -1

    @classmethod
    def open(
        cls,
        config: AgentBrainConfig | None = None,
        *,
        project_dir: str | Path | None = None,
        platform: str = DEFAULT_PLATFORM,
        session_id: str | None = None,
        max_file_size_bytes: int = MAX_STORE_FILE_SIZE_BYTES,
    ) -> Mind:
        cfg = config or load_config()
        root = Path(project_dir) if project_dir else resolve_project_dir()
        policy = resolve_memory_path_policy(
            policy_input_from_config(
                root,
                platform,
                memory_path=cfg.memory_path,
                platform_opt_in=cfg.platform_path_opt_in,
                platform_memory_path=cfg.platform_memory_path,
            )
        )
        policy.memory_path.parent.mkdir(parents=True, exist_ok=True)
        with memory_lock(policy.memory_path, timeout_s=cfg.lock_timeout_s):
            store = open_store_with_recovery(
                policy.memory_path, max_file_size_bytes=max_file_size_bytes
            )
        logger.debug("opened memory %s (%s)", policy.memory_path, policy.mode)
        return cls(store, cfg, policy, session_id=session_id)

    @property
    def memory_path(self) -> Path:
        return self.policy.memory_path

    @contextmanager
    def _locked(self) -> Iterator[None]:
        with memory_lock(self.memory_path, timeout_s=self.config.lock_timeout_s):
            yield

    def _invalidate_stats(self) -> None:
        self._cached_stats = None
        self._cached_stats_frame_count = -1

    def remember(
        self,
        observation_type: str,
        summary: str,
        content: str,
        *,
        tool: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        kind = validate_observation_type(observation_type)
        observation_id = generate_id()
        record_metadata: dict[str, Any] = {
            **(metadata or {}),
            "observation_id": observation_id,
            "timestamp": now_ms(),
            "session_id": self.session_id,
            "type": kind,
        }
        tags = [kind, f"{reconcile.SESSION_TAG_PREFIX}{self.session_id}"]
        if tool:
            record_metadata["tool"] = tool
            tags.append(f"{reconcile.TOOL_TAG_PREFIX}{tool}")
        with self._locked():
            frame_id = self.store.put(
                {
                    "title": f"[{kind}] {summary}",
                    "label": kind,
                    "text": content,
                    "metadata": record_metadata,
                    "tags": tags,
                }
            )
        self.session_observation_count += 1
        self._invalidate_stats()
        return frame_id

    def search(self, query: str, limit: int = 10) -> list[MemorySearchResult]:
        with self._locked():
            return self._search_unlocked(query, limit)

    def _search_unlocked(self, query: str, limit: int) -> list[MemorySearchResult]:
        results = self.store.find(query, k=limit, mode=SEARCH_MODE)
        return [
            reconcile.observation_from_hit(frame)
            for frame in reconcile.to_search_frames(results)
        ]

    def ask(self, question: str) -> str:
        with self._locked():
            result = self.store.ask(question, k=5, mode=SEARCH_MODE)
        answer = result.get("answer") if isinstance(result, dict) else None
        return answer or NO_ANSWER

    def get_context(self, query: str | None = None) -> InjectedContext:
        with self._locked():
            timeline = self.store.timeline(
                limit=self.config.max_context_observations, reverse=True
            )
            recent = self._observations_from_rows(reconcile.to_timeline_frames(timeline))
            relevant = (
                [result.observation for result in self._search_unlocked(query, 10)]
                if query
                else []
            )
            summary_hits = reconcile.to_search_frames(
                self.store.find(SUMMARY_QUERY, k=20, mode=SEARCH_MODE)
            )

        summaries: list[SessionSummary] = []
        seen: set[str] = set()
        for hit in summary_hits:
            summary = reconcile.extract_session_summary(hit)
            if summary is None or summary.id in seen:
                continue
            seen.add(summary.id)
            summaries.append(summary)
            if len(summaries) >= CONTEXT_SUMMARY_LIMIT:
                break

        token_count = 0
        for observation in recent:
            tokens = estimate_tokens(f"[{observation.type}] {observation.summary}")
            if token_count + tokens > self.config.max_context_tokens:
                break
            token_count += tokens

        return InjectedContext(
            recent_observations=recent,
            relevant_memories=relevant,
            session_summaries=summaries,
            token_count=token_count,
        )

    def _observations_from_rows(self, rows: Sequence[reconcile.Frame]) -> list[Observation]:
        return [
            reconcile.observation_from_timeline(row, info)
            for row, info, _ in self._row_details(rows)
        ]

    def _row_details(
        self, rows: Sequence[reconcile.Frame]
    ) -> Iterator[tuple[reconcile.Frame, dict[str, Any] | None, reconcile.Frame]]:
        """Yield each row with its frame info and the frame to decode from.

        The decode frame is the stored frame info when available, so tags and
        metadata are read exactly; the preview text is only a fallback.
        """

        for start in range(0, len(rows), FRAME_INFO_BATCH_SIZE):
            for row in rows[start : start + FRAME_INFO_BATCH_SIZE]:
                info = self._frame_info(row.get("frame_id"))
                details = info if info is not None else reconcile.with_preview_fields(row)
                yield row, info, details

    def _frame_info(self, frame_id: object) -> dict[str, Any] | None:
        if frame_id is None:
            return None
        try:
            info = self.store.get_frame_info(frame_id)  # type: ignore[arg-type]
        except StoreError as exc:
            logger.debug("frame info lookup failed for %s", frame_id, exc_info=exc)
            return None
        return info if isinstance(info, dict) else None

    def save_session_summary(
        self,
        key_decisions: Sequence[str],
        files_modified: Sequence[str],
        summary: str,
        *,
        observation_count: int | None = None,
        start_time: int | None = None,
    ) -> str:
        session_summary = SessionSummary(
            id=self.session_id,
            start_time=start_time if start_time is not None else self.session_start_time,
            end_time=now_ms(),
            observation_count=(
                observation_count
                if observation_count is not None
                else self.session_observation_count
            ),
            key_decisions=list(key_decisions)[:MAX_KEY_DECISIONS],
            files_modified=list(files_modified)[:MAX_FILES_MODIFIED],
            summary=summary,
        )
        payload = session_summary.to_dict()
        day = dt.datetime.now(dt.UTC).date().isoformat()
        with self._locked():
            frame_id = self.store.put(
                {
                    "title": f"{SUMMARY_QUERY}: {day}",
                    "label": reconcile.SESSION_LABEL,
                    "text": json.dumps(payload, ensure_ascii=False, indent=2),
                    "metadata": {**payload, "session_id": self.session_id},
                    "tags": [
                        "session",
                        "summary",
                        f"{reconcile.SESSION_TAG_PREFIX}{self.session_id}",
                    ],
                }
            )
        self._invalidate_stats()
        return frame_id

    def session_observations(self, session_id: str | None = None) -> list[Observation]:
        target = session_id or self.session_id
        with self._locked():
            total = int(self.store.stats().get("frame_count") or 0)
            if total <= 0:
                return []
            rows = reconcile.to_timeline_frames(self.store.timeline(limit=total, reverse=False))
            return [
                reconcile.observation_from_timeline(row, info)
                for row, info, details in self._row_details(rows)
                if reconcile.extract_session_id(details) == target
                and reconcile.extract_observation_type(details) is not None
            ]

    def stats(self) -> MindStats:
        with self._locked():
            store_stats = self.store.stats()
            total = int(store_stats.get("frame_count") or 0)
            if self._cached_stats is not None and self._cached_stats_frame_count == total:
                return self._cached_stats
            rows = (
                reconcile.to_timeline_frames(self.store.timeline(limit=total, reverse=False))
                if total > 0
                else []
            )
            details = [(row, frame) for row, _, frame in self._row_details(rows)]
            summary_hits = reconcile.to_search_frames(
                self.store.find(SUMMARY_QUERY, k=50, mode=SEARCH_MODE)
            )

        session_ids: set[str] = set()
        top_types = empty_type_counts()
        oldest = 0
        newest = 0
        for row, frame in details:
            timestamp = reconcile.normalize_timestamp_ms(row.get("timestamp") or 0)
            if timestamp > 0:
                oldest = timestamp if oldest == 0 else min(oldest, timestamp)
                newest = max(newest, timestamp)
            session_id = reconcile.extract_session_id(frame)
            if session_id:
                session_ids.add(session_id)
            observation_type = reconcile.extract_observation_type(frame)
            if observation_type:
                top_types[observation_type] += 1
        for hit in summary_hits:
            summary = reconcile.extract_session_summary(hit)
            if summary:
                session_ids.add(summary.id)

        result = MindStats(
            total_observations=total,
            total_sessions=len(session_ids),
            oldest_memory=oldest,
            newest_memory=newest,
            file_size=int(store_stats.get("size_bytes") or 0),
            top_types=top_types,
        )
        self._cached_stats = result
        self._cached_stats_frame_count = total
        return result

    def close(self) -> None:
        self.store.close()
