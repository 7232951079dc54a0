from .batch import BatchUpdateQueue
from .cache import CacheEntry, InFlightRequestDeduper, ProductCache
from .cart import CartStore, SyncIssue
from .fetcher import ProductFetcher
from .inventory import InventoryStore
from .persistence import JsonFileStorage, KeyValueStorage, LocalPersistence, MemoryStorage
from .versioning import compare_and_swap, is_older_version, versions_match

__all__ = [
    "BatchUpdateQueue",
    "CacheEntry",
    "CartStore",
    "InFlightRequestDeduper",
    "InventoryStore",
    "JsonFileStorage",
    "KeyValueStorage",
    "LocalPersistence",
    "MemoryStorage",
    "ProductCache",
    "ProductFetcher",
    "SyncIssue",
    "compare_and_swap",
    "is_older_version",
    "versions_match",
]
