"""
Haste Content Codec — gzip + base64 transform for stored payloads.

Stored form: standard (padded) base64 of the gzip-compressed payload, so
binary uploads travel through string-valued Redis records unchanged.
"""

from __future__ import annotations

import base64
import binascii
import gzip
import zlib

from haste.engine.errors import DocumentDecodeError


class ContentCodec:
    """Reversible bytes <-> text-safe string transform."""

    def __init__(self, compression_level: int = 9):
        self._compression_level = compression_level

    def encode(self, data: bytes) -> str:
        """Compress then base64-encode. Total for any byte string, including b''."""
        zipped = gzip.compress(bytes(data), compresslevel=self._compression_level)
        return base64.b64encode(zipped).decode("ascii")

    def decode(self, text: str) -> bytes:
        """
        Inverse of encode().

        Raises:
            DocumentDecodeError: text is not valid base64 or not a clean gzip stream.
        """
        try:
            zipped = base64.b64decode(text, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DocumentDecodeError(
                f"Stored payload is not valid base64: {e}", operation="decode"
            ) from e
        try:
            return gzip.decompress(zipped)
        except (OSError, EOFError, zlib.error) as e:
            raise DocumentDecodeError(
                f"Stored payload does not decompress cleanly: {e}", operation="decode"
            ) from e

    @property
    def compression_level(self) -> int:
        return self._compression_level

    def __repr__(self) -> str:
        return f"<ContentCodec gzip level={self._compression_level}>"
