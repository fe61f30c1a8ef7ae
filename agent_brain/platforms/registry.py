from __future__ import annotations

from typing import Protocol

from .contract import PlatformAdapter


class ReadonlyAdapterRegistry(Protocol):
    def resolve(self, platform: str) -> PlatformAdapter | None: ...

    def list_platforms(self) -> list[str]: ...


class AdapterRegistry:
    def __init__(self) -> None:
        self._adapters: dict[str, PlatformAdapter] = {}

    def register(self, adapter: PlatformAdapter) -> None:
        self._adapters[adapter.platform] = adapter

    def resolve(self, platform: str) -> PlatformAdapter | None:
        return self._adapters.get(platform)

    def list_platforms(self) -> list[str]:
        return sorted(self._adapters)
