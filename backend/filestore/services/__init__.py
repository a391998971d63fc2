"""Storage engine, identifier generation, and display projection."""
from filestore.services.file_storage import FileStorage
from filestore.services.folder_storage import FolderStorage, OrphanPolicy
from filestore.services.id_generator import IdGenerator, new_file_id, new_folder_id

__all__ = [
    "FileStorage", "FolderStorage", "OrphanPolicy",
    "IdGenerator", "new_file_id", "new_folder_id",
]
