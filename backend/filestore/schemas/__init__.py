"""Typed record shapes returned by the storage layer."""
from filestore.schemas.common import BatchItemResult
from filestore.schemas.file import FileItem, FileType, StoredFile
from filestore.schemas.folder import Folder

__all__ = ["BatchItemResult", "FileItem", "FileType", "StoredFile", "Folder"]
