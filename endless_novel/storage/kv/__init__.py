"""Key/value storage for serialized client-side collections."""

from endless_novel.storage.kv.base import KVEntry
from endless_novel.storage.kv import crud

__all__ = ["KVEntry", "crud"]
