"""
Integration Tests: File Storage

CRUD over the files collection, folder filtering, ingest/export, and
sequential batch operations with per-item results.
"""

import asyncio
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy import insert

from filestore.errors import CorruptRecord, DuplicateId, NotFound, ValidationError
from filestore.models import FileRecord
from filestore.schemas.file import FileType
from filestore.services.file_storage import FileStorage


# =============================================================================
# Create / Get / Delete
# =============================================================================

class TestFileCrud:
    """Test single-record operations."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_create_then_get_round_trip(self, files, folders):
        folder = await folders.create_folder("Reports")
        created = await files.create_file(b"%PDF-1.4", "report.pdf", "application/pdf", 8, folder.id)

        fetched = await files.get_file(created.id)

        assert fetched == created
        assert fetched.payload == b"%PDF-1.4"
        assert fetched.folder_id == folder.id
        assert fetched.created_at.tzinfo is not None

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_defaults(self, files):
        created = await files.create_file(b"12345", "blob")

        assert created.mime_type == "application/octet-stream"
        assert created.size_bytes == 5
        assert created.folder_id == "all"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_camel_case_dump(self, files):
        created = await files.create_file(b"x", "x.txt", "text/plain")
        dumped = created.model_dump(by_alias=True)
        assert {"id", "name", "mimeType", "sizeBytes", "createdAt", "folderId", "payload"} == set(dumped)

    @pytest.mark.integration
    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["", "   "])
    async def test_empty_name_rejected(self, files, name):
        with pytest.raises(ValidationError):
            await files.create_file(b"x", name)

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_negative_size_rejected(self, files):
        with pytest.raises(ValidationError):
            await files.create_file(b"x", "x.bin", size_bytes=-1)

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_get_missing_file(self, files):
        with pytest.raises(NotFound) as exc_info:
            await files.get_file("file_missing")
        assert exc_info.value.record_id == "file_missing"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_delete_then_get_fails(self, files):
        created = await files.create_file(b"x", "x.txt", "text/plain")

        await files.delete_file(created.id)

        with pytest.raises(NotFound):
            await files.get_file(created.id)

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_delete_missing_file(self, files):
        with pytest.raises(NotFound):
            await files.delete_file("file_missing")

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_duplicate_id(self, store):
        files = FileStorage(store, id_generator=lambda: "file_fixed")
        await files.create_file(b"first", "first.txt")

        with pytest.raises(DuplicateId):
            await files.create_file(b"second", "second.txt")

        remaining = await files.list_files()
        assert [f.name for f in remaining] == ["first.txt"]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_unknown_folder_rejected(self, files):
        with pytest.raises(NotFound) as exc_info:
            await files.create_file(b"x", "x.txt", folder_id="folder_missing")

        assert exc_info.value.collection == "folders"
        assert await files.list_files() == []

    @pytest.mark.integration
    @pytest.mark.asyncio
    @pytest.mark.parametrize("sentinel", ["all", "recent", "starred"])
    async def test_virtual_folders_accepted(self, files, sentinel):
        created = await files.create_file(b"x", "x.txt", folder_id=sentinel)
        assert created.folder_id == sentinel

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_payload_is_a_copy(self, files):
        source = bytearray(b"original")
        created = await files.create_file(source, "a.bin")
        source[:] = b"mutated!"

        assert await files.read_payload(created.id) == b"original"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_read_payload_missing(self, files):
        with pytest.raises(NotFound):
            await files.read_payload("file_missing")

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_concurrent_creates(self, files):
        created = await asyncio.gather(*[
            files.create_file(f"{i}".encode(), f"{i}.txt", "text/plain") for i in range(10)
        ])

        assert len({f.id for f in created}) == 10
        assert len(await files.list_files()) == 10


# =============================================================================
# Listing
# =============================================================================

class TestListFiles:
    """Test folder filtering semantics."""

    @pytest_asyncio.fixture
    async def populated(self, files, folders):
        folder_a = await folders.create_folder("A")
        folder_b = await folders.create_folder("B")
        return {
            "a": await files.create_file(b"a", "a.txt", "text/plain", folder_id=folder_a.id),
            "b": await files.create_file(b"b", "b.txt", "text/plain", folder_id=folder_b.id),
            "starred": await files.create_file(b"s", "s.txt", "text/plain", folder_id="starred"),
            "root": await files.create_file(b"r", "r.txt", "text/plain"),
        }

    @pytest.mark.integration
    @pytest.mark.asyncio
    @pytest.mark.parametrize("folder_filter", [None, "all"])
    async def test_unfiltered(self, files, populated, folder_filter):
        listed = await files.list_files(folder_filter)
        assert {f.id for f in listed} == {f.id for f in populated.values()}

    @pytest.mark.integration
    @pytest.mark.asyncio
    @pytest.mark.parametrize("folder_key, expected", [
        ("a", {"a"}),
        ("b", {"b"}),
        ("starred", {"starred"}),
        ("recent", set()),
        ("folder_unknown", set()),
    ])
    async def test_filtered(self, files, populated, folder_key, expected):
        folder_filter = populated[folder_key].folder_id if folder_key in ("a", "b") else folder_key
        listed = await files.list_files(folder_filter)
        assert {f.id for f in listed} == {populated[key].id for key in expected}

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_list_items_projects_records(self, files):
        await files.create_file(b"\x89PNG" * 384, "photo.png", "image/png")

        items = await files.list_items()

        assert len(items) == 1
        assert items[0].name == "photo.png"
        assert items[0].type == FileType.IMAGE
        assert items[0].size == "1.5 KB"
        assert items[0].modified == "Today"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_malformed_rows_are_quarantined(self, store, files):
        good = await files.create_file(b"ok", "ok.txt", "text/plain")
        async with store.transaction() as db:
            await db.execute(insert(FileRecord).values(
                id="file_bad",
                name="bad.bin",
                mime_type="application/octet-stream",
                size_bytes=-10,
                created_at="2026-01-01T00:00:00.000+00:00",
                folder_id="all",
                payload=b"",
            ))

        listed = await files.list_files()

        assert [f.id for f in listed] == [good.id]
        with pytest.raises(CorruptRecord):
            await files.get_file("file_bad")


# =============================================================================
# Ingest / Export
# =============================================================================

class TestIngestExport:
    """Test moving payloads between disk and the store."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_ingest_path_guesses_type(self, files, folders, temp_dir: Path):
        docs = await folders.create_folder("Docs")
        source = temp_dir / "scan.pdf"
        source.write_bytes(b"%PDF-1.7 content")

        stored = await files.ingest_path(source, folder_id=docs.id)

        assert stored.name == "scan.pdf"
        assert stored.mime_type == "application/pdf"
        assert stored.size_bytes == len(b"%PDF-1.7 content")
        assert stored.folder_id == docs.id

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_ingest_unknown_extension(self, files, temp_dir: Path):
        source = temp_dir / "data.unknownext"
        source.write_bytes(b"\x00\x01")

        stored = await files.ingest_path(source)

        assert stored.mime_type == "application/octet-stream"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_ingest_missing_path(self, files, temp_dir: Path):
        with pytest.raises(ValidationError):
            await files.ingest_path(temp_dir / "nope.txt")

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_export_never_overwrites(self, files, temp_dir: Path):
        stored = await files.create_file(b"hello", "hello.txt", "text/plain")
        out_dir = temp_dir / "downloads"

        first = await files.export_file(stored.id, out_dir)
        second = await files.export_file(stored.id, out_dir)

        assert first == out_dir / "hello.txt"
        assert second == out_dir / "hello (1).txt"
        assert first.read_bytes() == second.read_bytes() == b"hello"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_export_strips_directories_from_name(self, files, temp_dir: Path):
        stored = await files.create_file(b"x", "../../escape.txt", "text/plain")

        target = await files.export_file(stored.id, temp_dir / "out")

        assert target == temp_dir / "out" / "escape.txt"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_export_missing(self, files, temp_dir: Path):
        with pytest.raises(NotFound):
            await files.export_file("file_missing", temp_dir)


# =============================================================================
# Batches
# =============================================================================

class TestBatches:
    """Test sequential batch operations with per-item outcomes."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_delete_files_partial_failure(self, files):
        a = await files.create_file(b"a", "a.txt")
        b = await files.create_file(b"b", "b.txt")

        results = await files.delete_files([a.id, "file_missing", b.id])

        assert [r.ok for r in results] == [True, False, True]
        assert results[1].id == "file_missing"
        assert results[1].error_kind == "NotFound"
        assert await files.list_files() == []

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_export_files_reports_paths(self, files, temp_dir: Path):
        a = await files.create_file(b"a", "a.txt")

        results = await files.export_files([a.id, "file_missing"], temp_dir / "out")

        assert results[0].ok
        assert Path(results[0].path).read_bytes() == b"a"
        assert not results[1].ok
        assert results[1].path is None

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_empty_batch(self, files):
        assert await files.delete_files([]) == []
