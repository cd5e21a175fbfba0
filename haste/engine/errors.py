"""
Haste Error Hierarchy — Structured exceptions for the paste store.

Every error carries the document key it concerns (when there is one) and
serializes to a JSON-compatible dict so the HTTP boundary can log it and
return it to clients without further translation.

Hierarchy:
    HasteError
    ├── DocumentDecodeError        — Stored payload or metadata is corrupt
    ├── DocumentNotFoundError      — Key absent from the store
    │   └── IncompleteDocumentError — Only one half of the record pair exists
    ├── StoreUnavailableError      — Backend connection failure / circuit open
    ├── HasteValidationError       — Bad request input (missing multipart field)
    ├── DocumentTooLargeError      — Encoded payload over storage.max_length
    ├── DocumentNotAcceptableError — Stored type not allowed by the request Accept header
    └── HasteConfigError           — Invalid configuration
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class HasteError(Exception):
    """
    Base error for all Haste failures.

    ``status_code`` is the HTTP status the boundary answers with.
    """

    status_code: int = 500

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.key: Optional[str] = context.get("key")
        self.operation: Optional[str] = context.get("operation")
        self.error_type: str = self.__class__.__name__
        self.context: Dict[str, Any] = context
        self.timestamp: str = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize error to JSON-compatible dict for logging."""
        return {
            "error_type": self.error_type,
            "message": self.message,
            "key": self.key,
            "operation": self.operation,
            "timestamp": self.timestamp,
            "context": {
                k: str(v) for k, v in self.context.items()
                if k not in ("key", "operation")
            },
        }

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), default=str)

    def to_response(self) -> Dict[str, str]:
        """Client-facing body: error kind and message only."""
        return {"error": self.error_type, "message": self.message}

    def __repr__(self) -> str:
        parts = [f"{self.error_type}: {self.message}"]
        if self.key:
            parts.append(f"key={self.key}")
        if self.operation:
            parts.append(f"operation={self.operation}")
        return " | ".join(parts)


class DocumentDecodeError(HasteError):
    """Payload is not valid base64, does not gunzip, or metadata is not valid JSON."""
    status_code = 500


class DocumentNotFoundError(HasteError):
    """No document stored under the requested key."""
    status_code = 404


class IncompleteDocumentError(DocumentNotFoundError):
    """
    Only one of ``info.<key>`` / ``data.<key>`` exists.

    Writes are transactional so this means the backend lost data; it is
    reported as not-found to clients and logged as an inconsistency.
    """

    def __init__(self, message: str, **context: Any):
        self.missing: Optional[str] = context.get("missing")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["missing"] = self.missing
        return d


class StoreUnavailableError(HasteError):
    """Key-value backend unreachable, timed out, or circuit breaker open."""
    status_code = 503

    def __init__(self, message: str, **context: Any):
        self.circuit_open: bool = bool(context.get("circuit_open", False))
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["circuit_open"] = self.circuit_open
        return d


class HasteValidationError(HasteError):
    """
    Request or model input rejected.
    Includes field-level error details when pydantic produced them.
    """
    status_code = 400

    def __init__(self, message: str, **context: Any):
        self.validation_errors: Optional[list] = context.get("validation_errors")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["validation_errors"] = self.validation_errors
        return d


class DocumentTooLargeError(HasteError):
    """Encoded document exceeds the configured maximum length."""
    status_code = 413

    def __init__(self, message: str, **context: Any):
        self.max_length: Optional[int] = context.get("max_length")
        self.actual_length: Optional[int] = context.get("actual_length")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["max_length"] = self.max_length
        d["actual_length"] = self.actual_length
        return d


class DocumentNotAcceptableError(HasteError):
    """Stored mimetype is not allowed by the request's Accept header."""
    status_code = 415

    def __init__(self, message: str, **context: Any):
        self.mimetype: Optional[str] = context.get("mimetype")
        self.accept: Optional[str] = context.get("accept")
        super().__init__(message, **context)


class HasteConfigError(HasteError):
    """Configuration error — invalid haste.yaml or key alphabet setup."""
    pass
