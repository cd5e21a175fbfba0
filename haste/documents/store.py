"""
Haste Document Store — key → (metadata, content) persistence over Redis.

Redis layout:
    info.<key>  JSON metadata (DocumentMetadata.to_json)
    data.<key>  encoded payload (ContentCodec.encode)
    recent      list of recently created keys, newest first

Both records of a document are written in a single transaction, so a reader
never sees one half without the other.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Tuple

from haste.documents.models import DocumentMetadata
from haste.engine.errors import DocumentNotFoundError, IncompleteDocumentError
from haste.engine.redis_client import RedisConnection

logger = logging.getLogger("haste.documents.store")

INFO_PREFIX = "info."
DATA_PREFIX = "data."
RECENT_LIST = "recent"


def info_key(key: str) -> str:
    return f"{INFO_PREFIX}{key}"


def data_key(key: str) -> str:
    return f"{DATA_PREFIX}{key}"


class DocumentStore:
    """
    Persistence facade for documents.

    Holds no document state of its own; every call is a store round trip.
    """

    def __init__(self, connection: RedisConnection, recent_limit: int = 20):
        self._connection = connection
        self._recent_limit = recent_limit

    def put(self, key: str, metadata: DocumentMetadata, content: str) -> None:
        """Write both records (and the recent-list entry) atomically. Overwrites silently."""
        self._connection.mset_transaction(
            {info_key(key): metadata.to_json(), data_key(key): content},
            recent_list=RECENT_LIST,
            recent_value=key,
            recent_limit=self._recent_limit,
        )
        logger.debug(f"Stored document {key} ({metadata.size} bytes)")

    def get(self, key: str) -> Tuple[DocumentMetadata, str]:
        """
        Read both records for key.

        Raises:
            DocumentNotFoundError: neither record exists.
            IncompleteDocumentError: exactly one record exists.
        """
        info_raw, data_raw = self._connection.mget([info_key(key), data_key(key)])
        if info_raw is None and data_raw is None:
            raise DocumentNotFoundError(f"Couldn't find document with key {key}", key=key, operation="get")
        if info_raw is None or data_raw is None:
            missing = "info" if info_raw is None else "data"
            logger.error(f"Store inconsistency: document {key} has no {missing} record")
            raise IncompleteDocumentError(
                f"Document {key} is incomplete in the store",
                key=key,
                operation="get",
                missing=missing,
            )
        return DocumentMetadata.from_json(info_raw), data_raw

    def get_metadata(self, key: str) -> DocumentMetadata:
        """Read only the metadata record."""
        info_raw = self._connection.get(info_key(key))
        if info_raw is None:
            raise DocumentNotFoundError(
                f"Couldn't find document with key {key}", key=key, operation="get_metadata"
            )
        return DocumentMetadata.from_json(info_raw)

    def get_many_metadata(self, keys: Iterable[str]) -> List[DocumentMetadata]:
        """Batched metadata lookup; absent keys are omitted, input order kept."""
        keys = list(keys)
        if not keys:
            return []
        raws = self._connection.mget([info_key(k) for k in keys])
        return [DocumentMetadata.from_json(raw) for raw in raws if raw is not None]

    def exists(self, key: str) -> bool:
        return self._connection.exists(info_key(key))

    def recent_keys(self) -> List[str]:
        if self._recent_limit <= 0:
            return []
        return self._connection.lrange(RECENT_LIST, 0, self._recent_limit - 1)

    def get_recent_metadata(self) -> List[DocumentMetadata]:
        return self.get_many_metadata(self.recent_keys())

    @property
    def connection(self) -> RedisConnection:
        return self._connection

    def __repr__(self) -> str:
        return f"<DocumentStore recent_limit={self._recent_limit}>"
