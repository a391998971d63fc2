"""Shared Pydantic schemas."""
from typing import Optional
from filestore.schemas.base import CamelModel


class BatchItemResult(CamelModel):
    """Outcome of one item in a sequential batch operation."""
    id: str
    ok: bool = True
    error: Optional[str] = None
    error_kind: Optional[str] = None
    path: Optional[str] = None

    @classmethod
    def failed(cls, record_id: str, exc: Exception) -> "BatchItemResult":
        return cls(id=record_id, ok=False, error=str(exc), error_kind=type(exc).__name__)
