"""Typed descriptors exchanged between the builder and the transport."""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class FluentHttpModel(BaseModel):
    model_config = ConfigDict(extra="ignore", arbitrary_types_allowed=True)


class FilePart(FluentHttpModel):
    """One part of a multipart body, either an uploaded file or a plain field."""

    name: str
    contents: Any = ""
    filename: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _coerce_sequence(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return dict(zip(("name", "contents", "filename", "headers"), value))
        return value

    @field_validator("contents", mode="before")
    @classmethod
    def _stringify_scalars(cls, value: Any) -> Any:
        # same rendering as httpx form fields
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @classmethod
    def from_field(cls, key: str, value: Any) -> "FilePart":
        """Build a part from a multipart mapping entry.

        Mapping values are full descriptors; anything else is the contents of
        a field named after ``key``.
        """
        if isinstance(value, (Mapping, FilePart)):
            return cls.model_validate(value)
        return cls(name=key, contents=value)

    def to_httpx(self) -> tuple[str, tuple[str | None, Any, str | None, dict[str, str]]]:
        return self.name, (self.filename, self.contents, None, dict(self.headers))


class TransferStats(FluentHttpModel):
    """Metadata about one completed transport attempt."""

    effective_uri: str
    handler_stats: dict[str, Any] = Field(default_factory=dict)
