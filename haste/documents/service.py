"""
Haste Paste Service — Create, fetch, head, batch and recent operations.

Composes KeyGenerator, ContentCodec and DocumentStore. Stateless between
requests and never caches documents: every read is a store round trip.

Identifiers in request paths may carry a trailing extension
(``AkwMrtCpeS.py``); it is cosmetic and stripped before lookup.
"""

from __future__ import annotations

import logging
import mimetypes
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple
from urllib.parse import quote

from haste.documents.codec import ContentCodec
from haste.documents.keys import DEFAULT_DELIMITER, KeyGenerator
from haste.documents.models import (
    DEFAULT_ENCODING,
    DEFAULT_MIMETYPE,
    DocumentMetadata,
)
from haste.documents.store import DocumentStore
from haste.engine.errors import DocumentNotAcceptableError, DocumentTooLargeError, HasteError
from haste.engine.logging import log, log_document_created, log_document_read, log_system_event

logger = logging.getLogger("haste.documents.service")

OCTET_STREAM = "application/octet-stream"
# Mimetype of a paste that is a single http(s) URL; GET answers with a redirect
URL_REDIRECT = "url-redirect"


def strip_extension(identifier: str, delimiter: str = DEFAULT_DELIMITER) -> str:
    """Cut identifier at the last delimiter; unchanged when there is none."""
    index = identifier.rfind(delimiter)
    if index < 0:
        return identifier
    return identifier[:index]


def syntax_from_filename(filename: str) -> str:
    """``report.csv`` → ``csv``; empty when there is no extension."""
    index = filename.rfind(".")
    if index > -1 and index < len(filename) - 1:
        return filename[index + 1:]
    return ""


def document_headers(metadata: DocumentMetadata) -> Dict[str, str]:
    """Response headers describing a stored document."""
    return {
        "content-type": metadata.mimetype,
        "content-length": str(metadata.size),
        "x-haste-key": metadata.key,
        "x-haste-name": _header_safe(metadata.name),
        "x-haste-size": str(metadata.size),
        "x-haste-syntax": metadata.syntax,
        "x-haste-mimetype": metadata.mimetype,
        "x-haste-encoding": metadata.encoding,
        "x-haste-time": str(metadata.time),
    }


def redirect_target(data: bytes) -> Optional[bytes]:
    """
    The URL when data is a single line starting with http:// or https://.

    Carriage returns are dropped; anything spanning more than one line is
    an ordinary paste and gives None.
    """
    if not data[:8].lower().startswith((b"http://", b"https://")):
        return None
    lines = data.replace(b"\r", b"").split(b"\n")
    if len(lines) != 1:
        return None
    return lines[0]


def redirect_location(target: bytes) -> str:
    """Location header value for a stored redirect target."""
    return quote(target.decode("utf-8", errors="replace"), safe=":/?#[]@!$&'()*+,;=%~")


def is_acceptable(mimetype: str, accept: Optional[str]) -> bool:
    """
    Whether an Accept header allows a stored mimetype.

    A missing header allows anything; otherwise the header must name the
    exact type, its major type wildcard (``text/*``) or ``*/*``.
    """
    if not accept:
        return True
    allowed = [mimetype, "*/*"]
    if "/" in mimetype:
        allowed.append(mimetype.split("/", 1)[0] + "/*")
    return any(candidate in accept for candidate in allowed)


def _check_acceptable(metadata: DocumentMetadata, accept: Optional[str], operation: str) -> None:
    if not is_acceptable(metadata.mimetype, accept):
        raise DocumentNotAcceptableError(
            "Requested document does not support acceptable content-type",
            key=metadata.key,
            operation=operation,
            mimetype=metadata.mimetype,
            accept=accept,
        )


def _header_safe(value: str) -> str:
    # HTTP header values are latin-1; percent-encode anything else
    try:
        value.encode("latin-1")
        return value
    except UnicodeEncodeError:
        return quote(value, safe=" ./-_")


class PasteService:
    """
    Paste orchestration layer.

    Constructed once at startup with the shared store, codec and key generator.
    """

    def __init__(
        self,
        store: DocumentStore,
        codec: ContentCodec,
        key_generator: KeyGenerator,
        max_length: Optional[int] = None,
        check_collisions: bool = False,
        max_key_attempts: int = 5,
    ):
        self._store = store
        self._codec = codec
        self._keys = key_generator
        self._max_length = max_length
        self._check_collisions = check_collisions
        self._max_key_attempts = max_key_attempts

    # -------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------

    def create(
        self,
        data: bytes,
        name: Optional[str] = None,
        mimetype: Optional[str] = None,
        key: Optional[str] = None,
        syntax: Optional[str] = None,
        detect_redirect: bool = False,
    ) -> DocumentMetadata:
        """
        Store a new document and return its metadata.

        Args:
            data: Raw payload.
            name: Original filename from a multipart upload.
            mimetype: Declared content type from a multipart upload.
            key: Fixed key (static documents); generated when None.
            syntax: Syntax hint; taken from the extension of name when None.
            detect_redirect: Store a single-line http(s) URL payload as a
                url-redirect document (raw bodies and the "data" form field).

        Raises:
            DocumentTooLargeError: encoded payload exceeds max_length.
            StoreUnavailableError: backend unreachable.
        """
        start = time.monotonic()
        builder = (
            DocumentMetadata.builder()
            .set_name("")
            .set_mimetype(DEFAULT_MIMETYPE)
            .set_encoding(DEFAULT_ENCODING)
            .set_syntax("")
        )

        if name:
            builder.set_name(name)
            if not mimetype or mimetype == OCTET_STREAM:
                guessed, _ = mimetypes.guess_type(name)
                mimetype = guessed or mimetype
            if syntax is None:
                syntax = syntax_from_filename(name)
        if syntax:
            builder.set_syntax(syntax)
        if mimetype:
            builder.set_mimetype(mimetype)

        if detect_redirect:
            target = redirect_target(data)
            if target is not None:
                data = target
                builder.set_mimetype(URL_REDIRECT)

        encoded = self._codec.encode(data)
        if self._max_length is not None and len(encoded) > self._max_length:
            raise DocumentTooLargeError(
                f"Document exceeds maximum length of {self._max_length} bytes "
                f"(doc size is {len(encoded)} bytes after gzip+base64)",
                operation="create",
                max_length=self._max_length,
                actual_length=len(encoded),
            )

        metadata = builder.set_key(key or self.choose_key()).set_size(len(data)).build()
        self._store.put(metadata.key, metadata, encoded)

        duration_ms = round((time.monotonic() - start) * 1000, 2)
        logger.info(f"Created document {metadata.key} ({metadata.size} bytes, {metadata.mimetype})")
        log(log_document_created(
            key=metadata.key,
            size=metadata.size,
            mimetype=metadata.mimetype,
            name=metadata.name,
            encoded_size=len(encoded),
            duration_ms=duration_ms,
        ))
        return metadata

    def choose_key(self) -> str:
        """
        Pick a key for a new document.

        Without collision checking the first generated key is used and a
        collision overwrites silently. With it, keys already in use are
        skipped, up to max_key_attempts; the last candidate is then used.
        """
        key = self._keys.generate_key()
        if not self._check_collisions:
            return key
        for attempt in range(1, self._max_key_attempts + 1):
            if not self._store.exists(key):
                return key
            logger.warning(f"Key collision on {key} (attempt {attempt})")
            if attempt < self._max_key_attempts:
                key = self._keys.generate_key()
        return key

    # -------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------

    def fetch(
        self, identifier: str, accept: Optional[str] = None,
    ) -> Tuple[DocumentMetadata, bytes]:
        """
        Return metadata and decoded payload for identifier (extension stripped).

        Raises DocumentNotAcceptableError when accept rules out the
        document's mimetype.
        """
        key = strip_extension(identifier)
        start = time.monotonic()
        try:
            metadata, encoded = self._store.get(key)
        except HasteError:
            log(log_document_read(key, "fetch", found=False))
            raise
        _check_acceptable(metadata, accept, "fetch")
        data = self._codec.decode(encoded)
        log(log_document_read(
            key, "fetch", found=True,
            duration_ms=round((time.monotonic() - start) * 1000, 2),
        ))
        logger.debug(f"Retrieved document {key}")
        return metadata, data

    def fetch_metadata(self, identifier: str, accept: Optional[str] = None) -> DocumentMetadata:
        """Return metadata only, for HEAD and existence probes."""
        key = strip_extension(identifier)
        try:
            metadata = self._store.get_metadata(key)
        except HasteError:
            log(log_document_read(key, "head", found=False))
            raise
        _check_acceptable(metadata, accept, "head")
        log(log_document_read(key, "head", found=True))
        return metadata

    def fetch_many_metadata(self, identifiers: Iterable[str]) -> List[DocumentMetadata]:
        """Metadata for each identifier that exists; others are skipped."""
        keys = [i.strip() for i in identifiers if i and i.strip()]
        return self._store.get_many_metadata(keys)

    def exists(self, identifier: str) -> bool:
        return self._store.exists(strip_extension(identifier))

    def recent(self) -> List[DocumentMetadata]:
        """Metadata of recently created documents, newest first."""
        return self._store.get_recent_metadata()

    # -------------------------------------------------------------------
    # Static documents
    # -------------------------------------------------------------------

    def load_static_documents(self, documents: Dict[str, str]) -> List[str]:
        """
        Store configured static documents under their own names.

        Documents already present are left alone. Unreadable or empty files
        are logged and skipped.

        Returns the names stored by this call.
        """
        stored: List[str] = []
        for name, path in documents.items():
            if self._store.exists(name):
                logger.debug(f"Not storing static document {name}, it already exists")
                continue

            file_path = Path(path)
            try:
                data = file_path.read_bytes()
            except OSError as e:
                logger.error(f"Failed to load static document {name} from {path}: {e}")
                log(log_system_event(
                    "static_document_failed", level="ERROR",
                    details={"name": name, "path": path, "error": str(e)},
                ))
                continue
            if not data:
                logger.error(f"Static document {name} at {path} is empty")
                continue

            self.create(
                data,
                name=name,
                mimetype=DEFAULT_MIMETYPE,
                key=name,
                syntax=syntax_from_filename(file_path.name),
            )
            stored.append(name)
            logger.info(f"Loaded static document {name} from {path}")
        return stored

    def __repr__(self) -> str:
        return (
            f"<PasteService keys={self._keys!r} max_length={self._max_length} "
            f"check_collisions={self._check_collisions}>"
        )
