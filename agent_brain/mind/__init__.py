from ._mind import Mind
from .reconcile import normalize_timestamp_ms, parse_leading_json_object
from .recovery import is_corrupted_store_error, open_store_with_recovery, prune_backups

__all__ = [
    "Mind",
    "is_corrupted_store_error",
    "normalize_timestamp_ms",
    "open_store_with_recovery",
    "parse_leading_json_object",
    "prune_backups",
]
