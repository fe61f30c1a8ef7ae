from __future__ import annotations

from typing import Any, Protocol, TypedDict


class StoreError(RuntimeError):
    pass


class StoreOpenError(StoreError):
    """The store file exists but could not be opened."""


class FrameRecord(TypedDict, total=False):
    title: str
    label: str
    labels: list[str]
    text: str
    metadata: dict[str, Any]
    tags: list[str]


class RecordStore(Protocol):
    """Capabilities the memory engine consumes from a record store.

    Result shapes are loose on purpose: callers normalize them.
    """

    path: str

    def put(self, record: FrameRecord) -> str: ...

    def find(self, query: str, *, k: int = 10, mode: str = "lex") -> Any: ...

    def timeline(self, *, limit: int = 50, reverse: bool = False) -> Any: ...

    def stats(self) -> dict[str, Any]: ...

    def ask(self, question: str, *, k: int = 5, mode: str = "lex") -> dict[str, Any]: ...

    def get_frame_info(self, frame_id: str | int) -> dict[str, Any]: ...

    def close(self) -> None: ...
