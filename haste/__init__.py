"""
Haste — Paste storage service.

Clients POST text or binary content and get back a short, human-readable
key; the content and its metadata are served back by key. Documents live in
Redis as a metadata/payload record pair.

Packages:
    haste.documents  — keys, codec, metadata model, store, paste service
    haste.engine     — configuration, errors, logging, Redis connection
    haste.server     — FastAPI application
    haste.cli        — ``haste`` command line
"""

__version__ = "1.0.0"
__all__ = ["documents", "engine", "server", "cli"]
