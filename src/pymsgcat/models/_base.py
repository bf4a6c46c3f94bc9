"""Base model shared by provider, cache and result records.

Every record inherits from :class:`MsgCatBaseModel` which provides:

* ``alias_generator=to_camel`` so the camelCase keys used in provider
  definitions and persisted cache files (``updateCycleInMs``,
  ``lastUpdated``) map to snake_case fields.
* Frozen instances; an updated record is built with ``model_copy(update=...)``.
* Unknown keys are ignored.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

Message = dict[str, Any]
"""A single message record.  Its shape is owned by the provider."""


def coerce_messages(value: Any) -> Any:
    """Treat a missing message collection as an empty one."""
    if value is None:
        return []
    return value


class MsgCatBaseModel(BaseModel):
    """Base for pymsgcat records."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )
