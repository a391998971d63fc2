"""Storage engine for the folders collection.

Virtual folders ("all", "recent", "starred") are never stored, so they never
appear in listings and cannot be renamed or deleted.
"""
import logging
from enum import Enum

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError

from filestore.database import StoreHandle
from filestore.errors import CorruptRecord, DuplicateId, FolderNotEmpty, NotFound, ValidationError
from filestore.models import ALL_FOLDER, SENTINEL_FOLDER_IDS, FileRecord, FolderRecord
from filestore.models.base import utc_now_iso
from filestore.schemas.folder import Folder
from filestore.services.id_generator import new_folder_id

logger = logging.getLogger(__name__)

COLLECTION = "folders"


class OrphanPolicy(str, Enum):
    """What delete_folder does with files that still reference the folder."""

    KEEP = "keep"            # leave their folder_id dangling
    REJECT = "reject"        # refuse with FolderNotEmpty
    CASCADE = "cascade"      # delete them too
    REASSIGN = "reassign"    # move them to "all"


def _to_folder(row: FolderRecord) -> Folder:
    try:
        return Folder.model_validate(row)
    except PydanticValidationError as e:
        raise CorruptRecord(COLLECTION, row.id, f"{e.error_count()} invalid field(s)") from e


def _clean_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Folder name cannot be empty")
    return cleaned


def _check_real_folder(folder_id: str):
    if folder_id in SENTINEL_FOLDER_IDS:
        raise ValidationError(f"'{folder_id}' is a virtual folder and is not stored")


class FolderStorage:
    """Create/list/rename/delete over user folders."""

    def __init__(self, handle: StoreHandle, id_generator=new_folder_id):
        self.handle = handle
        self.id_generator = id_generator

    async def create_folder(self, name: str) -> Folder:
        """Create a folder with a trimmed, non-empty name."""
        record = FolderRecord(id=self.id_generator(), name=_clean_name(name), created_at=utc_now_iso())
        async with self.handle.transaction() as db:
            db.add(record)
            try:
                await db.flush()
            except IntegrityError as e:
                raise DuplicateId(COLLECTION, record.id) from e

        logger.debug(f"Created folder {record.id} ({record.name!r})")
        return _to_folder(record)

    async def list_folders(self) -> list[Folder]:
        async with self.handle.session() as db:
            result = await db.execute(select(FolderRecord))
            rows = result.scalars().all()

        folders = []
        for row in rows:
            try:
                folders.append(_to_folder(row))
            except CorruptRecord as e:
                logger.warning(f"Quarantined malformed record: {e}")
        return folders

    async def get_folder(self, folder_id: str) -> Folder:
        _check_real_folder(folder_id)
        async with self.handle.session() as db:
            row = await db.get(FolderRecord, folder_id)
        if row is None:
            raise NotFound(COLLECTION, folder_id)
        return _to_folder(row)

    async def rename_folder(self, folder_id: str, new_name: str) -> Folder:
        """Rename a folder in one UPDATE statement. Concurrent renames: last write wins."""
        _check_real_folder(folder_id)
        name = _clean_name(new_name)
        async with self.handle.transaction() as db:
            result = await db.execute(
                update(FolderRecord).where(FolderRecord.id == folder_id).values(name=name)
            )
            if result.rowcount == 0:
                raise NotFound(COLLECTION, folder_id)
            row = await db.get(FolderRecord, folder_id)

        logger.debug(f"Renamed folder {folder_id} to {name!r}")
        return _to_folder(row)

    async def delete_folder(self, folder_id: str, orphans: OrphanPolicy = OrphanPolicy.KEEP):
        """Remove a folder record.

        With the default KEEP policy, files that reference the folder are left
        untouched and keep a dangling folder_id. The other policies act on
        those files in the same transaction as the folder delete.
        """
        _check_real_folder(folder_id)
        orphans = OrphanPolicy(orphans)
        async with self.handle.transaction() as db:
            if await db.get(FolderRecord, folder_id) is None:
                raise NotFound(COLLECTION, folder_id)

            referencing = FileRecord.folder_id == folder_id
            if orphans == OrphanPolicy.REJECT:
                count = (await db.execute(
                    select(func.count()).select_from(FileRecord).where(referencing)
                )).scalar_one()
                if count:
                    raise FolderNotEmpty(folder_id, count)
            elif orphans == OrphanPolicy.CASCADE:
                result = await db.execute(delete(FileRecord).where(referencing))
                logger.info(f"Deleted {result.rowcount} file(s) with folder {folder_id}")
            elif orphans == OrphanPolicy.REASSIGN:
                result = await db.execute(
                    update(FileRecord).where(referencing).values(folder_id=ALL_FOLDER)
                )
                logger.info(f"Moved {result.rowcount} file(s) from folder {folder_id} to '{ALL_FOLDER}'")

            await db.execute(delete(FolderRecord).where(FolderRecord.id == folder_id))

        logger.debug(f"Deleted folder {folder_id} (orphans={orphans.value})")
