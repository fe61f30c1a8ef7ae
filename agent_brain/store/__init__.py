from ._store import FrameStore, create_store, open_store
from .types import FrameRecord, RecordStore, StoreError, StoreOpenError

__all__ = [
    "FrameRecord",
    "FrameStore",
    "RecordStore",
    "StoreError",
    "StoreOpenError",
    "create_store",
    "open_store",
]
