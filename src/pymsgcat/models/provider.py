"""Provider records.

A provider is either embedded (``local``, messages hardcoded in its
definition) or network hosted (``remote``, messages fetched from ``url``).
The two kinds form a discriminated union on ``kind``; provider definitions
written with a ``type`` key are accepted as well.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import AliasChoices, Discriminator, Field, Tag, TypeAdapter, field_validator

from pymsgcat.models._base import Message, MsgCatBaseModel, coerce_messages


class ProviderKind(StrEnum):
    LOCAL = "local"
    REMOTE = "remote"


class _ProviderBase(MsgCatBaseModel):
    id: str
    update_cycle_in_ms: int | None = Field(default=None, ge=0)
    last_updated: int | None = Field(
        default=None,
        description="Epoch ms of the provider's last load, tracked by the owning application.",
    )

    @field_validator("id")
    @classmethod
    def _normalize_id(cls, value: str) -> str:
        provider_id = value.strip()
        if not provider_id:
            raise ValueError("id must be non-empty")
        return provider_id


class LocalProvider(_ProviderBase):
    """Provider whose messages ship with its definition."""

    kind: Literal["local"] = Field(
        default="local",
        validation_alias=AliasChoices("kind", "type"),
    )
    messages: list[Message] = Field(default_factory=list)

    @field_validator("messages", mode="before")
    @classmethod
    def _coerce_messages(cls, value: Any) -> Any:
        return coerce_messages(value)


class RemoteProvider(_ProviderBase):
    """Provider whose messages are served as JSON from ``url``.

    An empty ``url`` disables the provider without removing it.
    """

    kind: Literal["remote"] = Field(
        default="remote",
        validation_alias=AliasChoices("kind", "type"),
    )
    url: str = ""

    @field_validator("url", mode="before")
    @classmethod
    def _none_url(cls, value: Any) -> Any:
        if value is None:
            return ""
        return value


def _provider_kind(value: Any) -> str | None:
    if isinstance(value, dict):
        kind = value.get("kind", value.get("type"))
    else:
        kind = getattr(value, "kind", None)
    return None if kind is None else str(kind)


Provider = Annotated[
    Annotated[LocalProvider, Tag(ProviderKind.LOCAL.value)] | Annotated[RemoteProvider, Tag(ProviderKind.REMOTE.value)],
    Discriminator(_provider_kind),
]
"""Any provider, discriminated by ``kind``."""

_PROVIDER_ADAPTER: TypeAdapter[LocalProvider | RemoteProvider] = TypeAdapter(Provider)


def parse_provider(data: Any) -> LocalProvider | RemoteProvider:
    """Validate a raw provider definition into its concrete kind.

    Raises :class:`pydantic.ValidationError` for unknown kinds or invalid
    fields.
    """
    return _PROVIDER_ADAPTER.validate_python(data)
