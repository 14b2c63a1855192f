from .errors import CollectionCorruptError, StoreError, StoreWriteError
from .migrate import MigrationReport, migrate_collection
from .store import JsonCollectionStore

__all__ = [
    "CollectionCorruptError",
    "JsonCollectionStore",
    "MigrationReport",
    "StoreError",
    "StoreWriteError",
    "migrate_collection",
]
