"""Base model for documents exchanged with the key-value store and HTTP.

Fields are snake_case in Python and camelCase on the wire (``jobId``,
``startTime``, ...). Either spelling is accepted on input.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """BaseModel with camelCase aliases, populated by name or alias."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> str:
        """Serialize using camelCase aliases, omitting unset optionals."""
        return self.model_dump_json(by_alias=True, exclude_none=True)
