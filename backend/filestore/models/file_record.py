"""FileRecord model - file metadata plus the payload blob it owns."""
from sqlalchemy import String, BigInteger, LargeBinary
from sqlalchemy.orm import Mapped, mapped_column
from filestore.models.base import Base, CreatedAtMixin


class FileRecord(Base, CreatedAtMixin):
    __tablename__ = "files"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(255), nullable=False)
    size_bytes: Mapped[int] = mapped_column(BigInteger, nullable=False)
    folder_id: Mapped[str] = mapped_column(String(64), nullable=False, default="all", index=True)
    payload: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
