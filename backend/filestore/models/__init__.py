"""Import all models so SQLAlchemy metadata knows about them."""
from filestore.models.base import Base
from filestore.models.file_record import FileRecord
from filestore.models.folder import FolderRecord, ALL_FOLDER, RECENT_FOLDER, STARRED_FOLDER, SENTINEL_FOLDER_IDS
from filestore.models.store_meta import StoreMeta

__all__ = [
    "Base",
    "FileRecord", "FolderRecord", "StoreMeta",
    "ALL_FOLDER", "RECENT_FOLDER", "STARRED_FOLDER", "SENTINEL_FOLDER_IDS",
]
