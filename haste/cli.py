"""
Haste CLI — Server and maintenance commands.

Commands:
- haste run           — Start the HTTP server (uvicorn)
- haste check-config  — Validate haste.yaml and print a summary
- haste keygen        — Print sample keys for the configured alphabets
- haste logs-cleanup  — Compress / delete old JSON log files
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional

from haste.engine.errors import HasteConfigError

logger = logging.getLogger("haste.cli")


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    commands = {
        "run": cmd_run,
        "check-config": cmd_check_config,
        "keygen": cmd_keygen,
        "logs-cleanup": cmd_logs_cleanup,
    }

    try:
        return commands[args.command](args)
    except HasteConfigError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        return 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="haste",
        description="Haste — paste storage service",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # haste run
    run_parser = subparsers.add_parser("run", help="Start the HTTP server")
    run_parser.add_argument("--config", help="Path to haste.yaml (default: auto-discover)")
    run_parser.add_argument("--host", help="Host to bind (default: server.host)")
    run_parser.add_argument("--port", type=int, help="Port to bind (default: server.port)")

    # haste check-config
    check_parser = subparsers.add_parser("check-config", help="Validate configuration")
    check_parser.add_argument("--config", help="Path to haste.yaml (default: auto-discover)")

    # haste keygen
    keygen_parser = subparsers.add_parser("keygen", help="Print sample document keys")
    keygen_parser.add_argument("--config", help="Path to haste.yaml (default: auto-discover)")
    keygen_parser.add_argument("-n", "--count", type=int, default=5, help="Number of keys (default: 5)")

    # haste logs-cleanup
    cleanup_parser = subparsers.add_parser("logs-cleanup", help="Apply JSON log retention")
    cleanup_parser.add_argument("--config", help="Path to haste.yaml (default: auto-discover)")

    return parser


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_run(args: argparse.Namespace) -> int:
    """Start uvicorn with the configured application."""
    import uvicorn

    from haste.engine.config import load_config
    from haste.server import create_app

    config = load_config(args.config)
    host = args.host or config.server.host
    port = args.port or config.server.port

    app = create_app(config)
    uvicorn.run(app, host=host, port=port, log_level=config.logging.level.lower())
    return 0


def cmd_check_config(args: argparse.Namespace) -> int:
    """Load configuration and print the effective values."""
    from haste.engine.config import load_config

    config = load_config(args.config)
    print(f"{config.name} {config.version} ({config.environment})")
    print(f"  server:   {config.server.host}:{config.server.port} static={config.server.static_dir}")
    print(f"  redis:    {config.redis.url} (max_connections={config.redis.max_connections})")
    print(f"  keys:     length={config.keys.length} alphabets={len(config.keys.alphabets)} "
          f"check_collisions={config.keys.check_collisions}")
    print(f"  storage:  max_length={config.storage.max_length} recent_limit={config.storage.recent_limit}")
    print(f"  logging:  {config.logging.level} dir={config.logging.directory} "
          f"enabled={config.logging.enabled}")
    if config.documents:
        print(f"  documents: {', '.join(sorted(config.documents))}")
    print("Configuration OK")
    return 0


def cmd_keygen(args: argparse.Namespace) -> int:
    """Print sample keys."""
    from haste.documents.keys import KeyGenerator
    from haste.engine.config import load_config

    config = load_config(args.config)
    generator = KeyGenerator.from_config(config.keys)
    for _ in range(max(args.count, 0)):
        print(generator.generate_key())
    return 0


def cmd_logs_cleanup(args: argparse.Namespace) -> int:
    """Run retention cleanup on the JSON log directory."""
    from haste.engine.config import load_config
    from haste.engine.logging import LogRetentionManager

    config = load_config(args.config)
    manager = LogRetentionManager(
        log_dir=config.logging.directory,
        retention_days=config.logging.retention.model_dump(),
        compress_after_days=config.logging.compress_after_days,
    )
    result = manager.cleanup()
    print(f"Deleted {result['deleted']} file(s), compressed {result['compressed']} file(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
