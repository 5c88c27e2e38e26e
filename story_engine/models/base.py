"""
story_engine/models/base.py -- Shared base model for stored records.

All record models accept payloads keyed either in snake_case (the
storage side) or camelCase (the presentation side), and ignore keys they
do not know so that a form can post back a full record it previously
fetched.
"""

from __future__ import annotations

from typing import Any, Union

from pydantic import BaseModel, ConfigDict, StrictBool, StrictInt, StrictStr
from pydantic.alias_generators import to_camel

# Values allowed in a custom-fields bag.  StrictBool comes before
# StrictInt so that True stays a bool rather than becoming 1.
Scalar = Union[StrictBool, StrictInt, float, StrictStr, None]


class RecordModel(BaseModel):
    """Base for every record and partial-update model."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        validate_assignment=True,
    )

    def to_payload(self, *, camel: bool = True) -> dict[str, Any]:
        """Dump to a plain dict for the presentation boundary."""
        return self.model_dump(by_alias=camel)

    def provided_fields(self) -> dict[str, Any]:
        """Return only the fields the caller actually set to a value.

        ``None`` counts as "not provided": partial updates merge with
        COALESCE semantics, so a ``None`` can never clear a column.
        """
        return {
            key: value
            for key, value in self.model_dump(exclude_unset=True).items()
            if value is not None
        }
