from __future__ import annotations

import logging
from collections import OrderedDict
from pathlib import Path

from .capture import DEDUP_WINDOW_MS
from .config import AgentBrainConfig, load_config, resolve_project_dir
from .lru import BoundedLRUSet, RecentKeys
from .mind import Mind
from .platforms import DiagnosticStore, ReadonlyAdapterRegistry, build_default_registry
from .platforms.diagnostics import resolve_diagnostic_path

logger = logging.getLogger(__name__)

MAX_OPEN_MINDS = 8
MAX_SESSION_CACHE_SIZE = 500
MAX_TOOL_CALL_CACHE_SIZE = 5000
MAX_RECENT_OBSERVATIONS = 500


class RuntimeContext:
    """Process-wide state for hooks and long-lived host plugins.

    Holds the adapter registry, the diagnostic store, open memory handles and
    the bounded caches used to de-duplicate events.
    """

    def __init__(
        self,
        config: AgentBrainConfig,
        project_dir: Path,
        *,
        registry: ReadonlyAdapterRegistry | None = None,
        diagnostics: DiagnosticStore | None = None,
    ) -> None:
        self.config = config
        self.project_dir = project_dir
        self.registry: ReadonlyAdapterRegistry = registry or build_default_registry()
        self.diagnostics = diagnostics or DiagnosticStore(resolve_diagnostic_path(project_dir))
        self.introduced_sessions = BoundedLRUSet(MAX_SESSION_CACHE_SIZE)
        self.processed_tool_calls = BoundedLRUSet(MAX_TOOL_CALL_CACHE_SIZE)
        self.recent_observations = RecentKeys(MAX_RECENT_OBSERVATIONS, DEDUP_WINDOW_MS)
        self._minds: OrderedDict[tuple[str, str], Mind] = OrderedDict()

    @classmethod
    def create(
        cls,
        *,
        project_dir: str | Path | None = None,
        config: AgentBrainConfig | None = None,
    ) -> RuntimeContext:
        root = Path(project_dir) if project_dir else resolve_project_dir()
        return cls(config or load_config(), root)

    def get_mind(self, platform: str, session_id: str | None = None) -> Mind:
        key = (platform, session_id or "")
        mind = self._minds.get(key)
        if mind is not None:
            self._minds.move_to_end(key)
            return mind
        mind = Mind.open(
            self.config,
            project_dir=self.project_dir,
            platform=platform,
            session_id=session_id,
        )
        self._minds[key] = mind
        while len(self._minds) > MAX_OPEN_MINDS:
            _, evicted = self._minds.popitem(last=False)
            evicted.close()
        return mind

    def close(self) -> None:
        while self._minds:
            _, mind = self._minds.popitem(last=False)
            try:
                mind.close()
            except Exception as exc:  # noqa: BLE001
                logger.debug("closing memory handle failed", exc_info=exc)
