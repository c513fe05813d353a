"""
Shared schema base.

The taxi meter app speaks camelCase JSON; models keep snake_case attributes.
"""

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema with camelCase aliases on the wire."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True
