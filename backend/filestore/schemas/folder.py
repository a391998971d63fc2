"""Folder record schema."""
from datetime import datetime
from pydantic import Field
from filestore.schemas.base import CamelORMModel


class Folder(CamelORMModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    created_at: datetime
