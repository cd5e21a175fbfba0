"""
Haste Documents — Addressing and persistence of pastes.

A document is a DocumentMetadata record plus an encoded payload, stored
side by side under ``info.<key>`` and ``data.<key>``.
"""

from haste.documents.codec import ContentCodec
from haste.documents.keys import KeyGenerator
from haste.documents.models import DocumentMetadata, DocumentMetadataBuilder
from haste.documents.service import PasteService
from haste.documents.store import DocumentStore

__all__ = [
    "ContentCodec",
    "KeyGenerator",
    "DocumentMetadata",
    "DocumentMetadataBuilder",
    "DocumentStore",
    "PasteService",
]
