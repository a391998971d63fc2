"""File record and display schemas."""
from datetime import datetime
from enum import Enum
from pydantic import Field
from filestore.schemas.base import CamelModel, CamelORMModel


class FileType(str, Enum):
    """Coarse type category shown in file lists."""

    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    ARCHIVE = "archive"
    DOCUMENT = "document"
    OTHER = "other"


class StoredFile(CamelORMModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    mime_type: str = Field(min_length=1)
    size_bytes: int = Field(ge=0)
    created_at: datetime
    folder_id: str = Field(min_length=1)
    payload: bytes


class FileItem(CamelModel):
    """Display record projected from a StoredFile. Never persisted."""
    id: str
    name: str
    type: FileType
    size: str
    modified: str
