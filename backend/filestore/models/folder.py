"""Folder model - user-created folders. Virtual sentinel folders are never stored."""
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column
from filestore.models.base import Base, CreatedAtMixin

ALL_FOLDER = "all"
RECENT_FOLDER = "recent"
STARRED_FOLDER = "starred"
SENTINEL_FOLDER_IDS = frozenset({ALL_FOLDER, RECENT_FOLDER, STARRED_FOLDER})


class FolderRecord(Base, CreatedAtMixin):
    __tablename__ = "folders"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
