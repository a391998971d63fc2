"""Storage engine for the files collection.

Every public coroutine is one atomic transaction over a single record.
Batch helpers loop over single-record operations and report each item's
outcome; a failed item never undoes the ones committed before it.
"""
import logging
import mimetypes
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, Union

import aiofiles
import aiofiles.os
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from filestore.config import settings
from filestore.database import StoreHandle
from filestore.errors import CorruptRecord, DuplicateId, NotFound, StorageError, StorageUnavailable, ValidationError
from filestore.models import ALL_FOLDER, SENTINEL_FOLDER_IDS, FileRecord, FolderRecord
from filestore.models.base import utc_now_iso
from filestore.schemas.common import BatchItemResult
from filestore.schemas.file import FileItem, StoredFile
from filestore.services.id_generator import new_file_id
from filestore.services.projector import project

logger = logging.getLogger(__name__)

COLLECTION = "files"


def _to_stored_file(row: FileRecord) -> StoredFile:
    """Validate an ORM row into the typed record shape."""
    try:
        return StoredFile.model_validate(row)
    except PydanticValidationError as e:
        raise CorruptRecord(COLLECTION, row.id, f"{e.error_count()} invalid field(s)") from e


async def _write_new_file(dest_dir: Path, filename: str, data: bytes) -> Path:
    """Write data under dest_dir without overwriting: "a.txt", "a (1).txt", ..."""
    stem, suffix = Path(filename).stem, Path(filename).suffix
    candidate = dest_dir / filename
    copy = 0
    while True:
        try:
            async with aiofiles.open(candidate, "xb") as f:
                await f.write(data)
            return candidate
        except FileExistsError:
            copy += 1
            candidate = dest_dir / f"{stem} ({copy}){suffix}"


class FileStorage:
    """Create/read/list/delete over stored files, plus ingest and export."""

    def __init__(self, handle: StoreHandle, id_generator=new_file_id):
        self.handle = handle
        self.id_generator = id_generator

    async def create_file(
        self,
        raw_bytes: bytes,
        name: str,
        mime_type: Optional[str] = None,
        size_bytes: Optional[int] = None,
        folder_id: str = ALL_FOLDER,
    ) -> StoredFile:
        """Persist a new file record with its payload. Returns the stored record.

        Raises:
            ValidationError: empty name or negative size.
            NotFound: folder_id is neither a virtual folder nor a stored one.
            DuplicateId: the generated id already exists.
            StorageUnavailable: the store cannot be reached.
        """
        if not name or not name.strip():
            raise ValidationError("File name cannot be empty")
        if size_bytes is None:
            size_bytes = len(raw_bytes)
        if size_bytes < 0:
            raise ValidationError(f"File size cannot be negative: {size_bytes}")

        record = FileRecord(
            id=self.id_generator(),
            name=name,
            mime_type=mime_type or settings.DEFAULT_MIME_TYPE,
            size_bytes=size_bytes,
            created_at=utc_now_iso(),
            folder_id=folder_id or ALL_FOLDER,
            payload=bytes(raw_bytes),
        )
        async with self.handle.transaction() as db:
            if record.folder_id not in SENTINEL_FOLDER_IDS:
                if await db.get(FolderRecord, record.folder_id) is None:
                    raise NotFound("folders", record.folder_id)
            db.add(record)
            try:
                await db.flush()
            except IntegrityError as e:
                raise DuplicateId(COLLECTION, record.id) from e

        logger.debug(f"Created file {record.id} ({record.size_bytes} bytes) in {record.folder_id}")
        return _to_stored_file(record)

    async def list_files(self, folder_filter: Optional[str] = None) -> list[StoredFile]:
        """All files, or only those whose folder_id equals folder_filter.

        "all" (or no filter) means unfiltered. Order is unspecified.
        Rows that fail validation are logged and left out.
        """
        stmt = select(FileRecord)
        if folder_filter and folder_filter != ALL_FOLDER:
            stmt = stmt.where(FileRecord.folder_id == folder_filter)

        async with self.handle.session() as db:
            result = await db.execute(stmt)
            rows = result.scalars().all()

        files = []
        for row in rows:
            try:
                files.append(_to_stored_file(row))
            except CorruptRecord as e:
                logger.warning(f"Quarantined malformed record: {e}")
        return files

    async def list_items(
        self, folder_filter: Optional[str] = None, now: Optional[datetime] = None
    ) -> list[FileItem]:
        """Listing projected into display records."""
        return [project(f, now) for f in await self.list_files(folder_filter)]

    async def get_file(self, file_id: str) -> StoredFile:
        async with self.handle.session() as db:
            row = await db.get(FileRecord, file_id)
        if row is None:
            raise NotFound(COLLECTION, file_id)
        return _to_stored_file(row)

    async def read_payload(self, file_id: str) -> bytes:
        """Payload bytes for download. The returned bytes are an immutable copy."""
        async with self.handle.session() as db:
            result = await db.execute(select(FileRecord.payload).where(FileRecord.id == file_id))
            payload = result.scalar_one_or_none()
        if payload is None:
            raise NotFound(COLLECTION, file_id)
        return bytes(payload)

    async def delete_file(self, file_id: str):
        """Remove a file record. Deleting a missing id raises NotFound."""
        async with self.handle.transaction() as db:
            result = await db.execute(delete(FileRecord).where(FileRecord.id == file_id))
            if result.rowcount == 0:
                raise NotFound(COLLECTION, file_id)
        logger.debug(f"Deleted file {file_id}")

    async def ingest_path(
        self,
        path: Union[str, Path],
        folder_id: str = ALL_FOLDER,
        mime_type: Optional[str] = None,
    ) -> StoredFile:
        """Read a file from disk and store it, guessing the content type from its name."""
        path = Path(path)
        try:
            async with aiofiles.open(path, "rb") as f:
                contents = await f.read()
        except OSError as e:
            raise ValidationError(f"Cannot read {path}: {e}") from e

        mime_type = mime_type or mimetypes.guess_type(path.name)[0]
        return await self.create_file(contents, path.name, mime_type, len(contents), folder_id)

    async def export_file(self, file_id: str, dest_dir: Union[str, Path, None] = None) -> Path:
        """Write a file's payload to dest_dir under its display name. Returns the written path.

        Existing files are never overwritten; a " (n)" suffix is added instead.
        """
        stored = await self.get_file(file_id)
        dest_dir = Path(dest_dir or settings.EXPORT_PATH)
        filename = Path(stored.name).name or stored.id
        try:
            await aiofiles.os.makedirs(dest_dir, exist_ok=True)
            target = await _write_new_file(dest_dir, filename, stored.payload)
        except OSError as e:
            raise StorageUnavailable(f"Could not export {file_id} to {dest_dir}: {e}") from e

        logger.info(f"Exported file {file_id} to {target}")
        return target

    async def delete_files(self, file_ids: Iterable[str]) -> list[BatchItemResult]:
        """Delete each id in turn. Returns one result per id, in input order."""
        results = []
        for file_id in file_ids:
            try:
                await self.delete_file(file_id)
            except StorageError as e:
                logger.warning(f"Batch delete failed for {file_id}: {e}")
                results.append(BatchItemResult.failed(file_id, e))
            else:
                results.append(BatchItemResult(id=file_id))
        return results

    async def export_files(
        self, file_ids: Iterable[str], dest_dir: Union[str, Path, None] = None
    ) -> list[BatchItemResult]:
        """Export each id in turn. Returns one result per id, in input order."""
        results = []
        for file_id in file_ids:
            try:
                target = await self.export_file(file_id, dest_dir)
            except StorageError as e:
                logger.warning(f"Batch export failed for {file_id}: {e}")
                results.append(BatchItemResult.failed(file_id, e))
            else:
                results.append(BatchItemResult(id=file_id, path=str(target)))
        return results
