"""Error kinds raised by the storage layer.

Every failure reaches the immediate caller as one of these. Nothing here is
retried internally.
"""


class StorageError(Exception):
    """Base class for all storage-layer failures."""
    pass


class StorageUnavailable(StorageError):
    """The store could not be opened, upgraded, or reached."""
    pass


class NotFound(StorageError):
    """No record with the requested id exists in the collection."""

    def __init__(self, collection: str, record_id: str):
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"{collection} record not found: {record_id}")


class ValidationError(StorageError):
    """Caller-supplied input violates a precondition."""
    pass


class DuplicateId(StorageError):
    """A generated id collided with an existing record."""

    def __init__(self, collection: str, record_id: str):
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"{collection} id already exists: {record_id}")


class CorruptRecord(StorageError):
    """A stored row failed validation against its record shape."""

    def __init__(self, collection: str, record_id: str, detail: str = ""):
        self.collection = collection
        self.record_id = record_id
        msg = f"{collection} record {record_id} is malformed"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class FolderNotEmpty(StorageError):
    """Folder deletion refused because files still reference it."""

    def __init__(self, folder_id: str, file_count: int):
        self.folder_id = folder_id
        self.file_count = file_count
        super().__init__(f"Folder {folder_id} is referenced by {file_count} file(s)")
