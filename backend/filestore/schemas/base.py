"""Base schema classes with camelCase alias generation.

All record schemas inherit from these instead of BaseModel directly.
Python code stays snake_case. Dumped records (by_alias=True) become camelCase.
"""
from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for plain records. Accepts and outputs camelCase."""
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "protected_namespaces": (),
    }


class CamelORMModel(BaseModel):
    """Base for stored records. Reads from SQLAlchemy rows, outputs camelCase."""
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
        "frozen": True,
        "protected_namespaces": (),
    }
