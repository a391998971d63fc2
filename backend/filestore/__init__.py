"""Embedded, schema-versioned file and folder store."""
from filestore.database import SCHEMA_VERSION, StoreHandle, open_store, store_lifespan
from filestore.services.file_storage import FileStorage
from filestore.services.folder_storage import FolderStorage, OrphanPolicy

__all__ = [
    "SCHEMA_VERSION", "StoreHandle", "open_store", "store_lifespan",
    "FileStorage", "FolderStorage", "OrphanPolicy",
]
