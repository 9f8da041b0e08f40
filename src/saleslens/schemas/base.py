"""Base model with the camelCase wire format used by every JSON payload."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake-case attributes in Python, camelCase keys on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict:
        """Dump to the JSON-ready camelCase dict, omitting unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
