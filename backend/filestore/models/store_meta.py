"""StoreMeta model - key/value rows describing the store itself (schema version)."""
from sqlalchemy import String, Integer
from sqlalchemy.orm import Mapped, mapped_column
from filestore.models.base import Base

SCHEMA_VERSION_KEY = "schema_version"


class StoreMeta(Base):
    __tablename__ = "store_meta"

    key: Mapped[str] = mapped_column(String(50), primary_key=True)
    value: Mapped[int] = mapped_column(Integer, nullable=False)
