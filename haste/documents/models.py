"""
Haste Document Models — Paste metadata record and its builder.

DocumentMetadata is frozen: a stored record is built once at creation time
and never mutated. Changes go through DocumentMetadataBuilder, which keeps
its own draft and hands out independent snapshots from build().

Stored as JSON at ``info.<key>``:
    {"name", "key", "mimetype", "encoding", "syntax", "size", "time"}
"""

from __future__ import annotations

import logging
import time as _time
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from haste.engine.errors import DocumentDecodeError, HasteValidationError

logger = logging.getLogger("haste.documents.models")

DEFAULT_MIMETYPE = "text/plain"
DEFAULT_ENCODING = "utf-8"

METADATA_FIELDS = ("name", "key", "mimetype", "encoding", "syntax", "size", "time")


def current_time_millis() -> int:
    return int(_time.time() * 1000)


class DocumentMetadata(BaseModel):
    """Descriptive fields of one paste."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(default="", description="Original filename, empty if none supplied")
    key: str = Field(min_length=1, description="Unique document key")
    mimetype: str = Field(default=DEFAULT_MIMETYPE, description="Declared content type")
    encoding: str = Field(default=DEFAULT_ENCODING, description="Declared text encoding")
    syntax: str = Field(default="", description="Syntax-highlighting hint")
    size: int = Field(default=0, ge=0, description="Byte length of the decoded payload")
    time: int = Field(default=0, description="Creation time, epoch milliseconds")

    # -- Serialization --

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(include=set(METADATA_FIELDS))

    def to_json(self) -> str:
        return self.model_dump_json(include=set(METADATA_FIELDS))

    @classmethod
    def from_json(cls, raw: str) -> "DocumentMetadata":
        """
        Parse a stored metadata record.

        Raises:
            DocumentDecodeError: raw is not JSON or does not describe a document.
        """
        try:
            return cls.model_validate_json(raw)
        except ValidationError as e:
            raise DocumentDecodeError(
                f"Stored metadata is invalid: {e.error_count()} error(s)",
                operation="decode_metadata",
                validation_errors=e.errors(include_url=False),
            ) from e

    # -- Builders --

    @staticmethod
    def builder(existing: Optional["DocumentMetadata"] = None) -> "DocumentMetadataBuilder":
        return DocumentMetadataBuilder(existing)

    def to_builder(self) -> "DocumentMetadataBuilder":
        return DocumentMetadataBuilder(self)


class DocumentMetadataBuilder:
    """
    Copy-on-write builder for DocumentMetadata.

    An empty builder starts with ``time`` set to now. A seeded builder copies
    the values of the seed; later edits never reach the seed or any snapshot
    already returned by build().
    """

    def __init__(self, existing: Optional[DocumentMetadata] = None):
        if existing is None:
            self._draft: Dict[str, Any] = {"time": current_time_millis()}
        else:
            self._draft = existing.to_dict()

    def set_name(self, name: str) -> "DocumentMetadataBuilder":
        self._draft["name"] = name
        return self

    def set_key(self, key: str) -> "DocumentMetadataBuilder":
        self._draft["key"] = key
        return self

    def set_mimetype(self, mimetype: str) -> "DocumentMetadataBuilder":
        self._draft["mimetype"] = mimetype
        return self

    def set_encoding(self, encoding: str) -> "DocumentMetadataBuilder":
        self._draft["encoding"] = encoding
        return self

    def set_syntax(self, syntax: str) -> "DocumentMetadataBuilder":
        self._draft["syntax"] = syntax
        return self

    def set_size(self, size: int) -> "DocumentMetadataBuilder":
        self._draft["size"] = size
        return self

    def set_time(self, time: int) -> "DocumentMetadataBuilder":
        self._draft["time"] = time
        return self

    def peek(self, field: str) -> Any:
        """Read a value already set on the draft (None if unset)."""
        if field not in METADATA_FIELDS:
            raise KeyError(field)
        return self._draft.get(field)

    def build(self) -> DocumentMetadata:
        """
        Return an independent snapshot of the draft.

        Raises:
            HasteValidationError: the draft has no key or holds invalid values.
        """
        try:
            return DocumentMetadata(**self._draft)
        except ValidationError as e:
            raise HasteValidationError(
                f"Incomplete document metadata: {e.error_count()} error(s)",
                key=self._draft.get("key"),
                operation="build_metadata",
                validation_errors=e.errors(include_url=False),
            ) from e

    def __repr__(self) -> str:
        return f"<DocumentMetadataBuilder key={self._draft.get('key')!r}>"
