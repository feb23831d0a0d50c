"""Betsettler CLI entry point."""

import argparse
import asyncio
import logging
import sys

from dotenv import load_dotenv
from pydantic import ValidationError

load_dotenv()

from betsettler import __version__
from betsettler.config import Settings, get_settings
from betsettler.observability import configure_logging, initialize_logfire
from betsettler.scheduler import run_once, run_worker
from betsettler.storage import (
    StoreConnectionError,
    close_connections,
    connect_mongo,
    connect_redis,
    sanitize_mongodb_url,
)

logger = logging.getLogger(__name__)


def _mask(value: str | None) -> str:
    return "✓ Set" if value else "✗ Not set"


def _load_settings() -> Settings | None:
    try:
        return get_settings()
    except ValidationError as e:
        print("\n❌ Configuration Error:\n")
        for error in e.errors():
            print(f"  • {'.'.join(str(x) for x in error['loc'])}: {error['msg']}")
        print()
        return None


def cmd_config(args: argparse.Namespace) -> int:
    """Display merged configuration."""
    settings = _load_settings()
    if settings is None:
        return 1

    print("\n=== Betsettler Configuration ===\n")
    print(f"Environment: {settings.environment}")
    print(f"Config File: {settings.config_file}\n")

    print("MongoDB:")
    print(f"  URI: {sanitize_mongodb_url(settings.mongo.uri)}")
    print(f"  Database: {settings.mongo.database}\n")

    print("Redis:")
    print(f"  Host: {settings.redis.host}:{settings.redis.port}")
    print(f"  Password: {_mask(settings.redis.password)}")
    print(f"  Limits Key: {settings.redis.limits_key}\n")

    print("Ledger:")
    print(f"  URL: {settings.ledger.url or '✗ Not set'}")
    print(f"  API Key: {_mask(settings.ledger.api_key)}")
    print(f"  Timeout: {settings.ledger.timeout_seconds}s\n")

    print("Processor:")
    print(f"  Interval: {settings.processor.interval_ms}ms")
    print(f"  Default Refund: {settings.processor.default_refund_pct:g}%\n")

    print(f"Logfire: {_mask(settings.logfire_token)}\n")
    return 0


async def _check_connections(settings: Settings) -> None:
    try:
        await connect_mongo(settings)
        print("  ✓ MongoDB reachable")
        await connect_redis(settings)
        print("  ✓ Redis reachable")
    finally:
        await close_connections()


def cmd_check(args: argparse.Namespace) -> int:
    """Verify MongoDB and Redis connectivity."""
    settings = _load_settings()
    if settings is None:
        return 1

    print("\n=== Connectivity Check ===\n")
    try:
        asyncio.run(_check_connections(settings))
    except StoreConnectionError as e:
        print(f"  ❌ {e}\n")
        return 1

    print()
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    """Start the settlement worker."""
    settings = _load_settings()
    if settings is None:
        return 1

    configure_logging("DEBUG" if args.debug else settings.log_level)
    initialize_logfire(settings)

    if not settings.ledger.url:
        logger.warning("Ledger URL not set - every submission will fail")

    print("\n=== Betsettler Settlement Worker ===\n")
    print(f"Version: {__version__}")
    print(f"Environment: {settings.environment}")
    print(f"Interval: {settings.processor.interval_ms}ms\n")

    try:
        if args.once:
            report = asyncio.run(run_once(settings))
            print(f"\nCycle complete: {report}\n")
            return 0 if report.error is None else 1

        asyncio.run(run_worker(settings))
        return 0

    except StoreConnectionError as e:
        logger.error(f"Fatal: could not connect to {e.store}: {e}")
        print(f"\nFailed to start: {e}\n")
        return 1
    except KeyboardInterrupt:
        print("\n\nReceived interrupt signal. Shutting down...\n")
        return 0


def main() -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Betsettler: settlement worker for first-event wagers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Betsettler {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parser_config = subparsers.add_parser(
        "config",
        help="Display merged configuration",
    )
    parser_config.set_defaults(func=cmd_config)

    parser_check = subparsers.add_parser(
        "check",
        help="Check MongoDB and Redis connectivity",
    )
    parser_check.set_defaults(func=cmd_check)

    parser_run = subparsers.add_parser(
        "run",
        help="Start the settlement worker",
    )
    parser_run.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser_run.add_argument(
        "--once",
        action="store_true",
        help="Run a single settlement cycle then exit",
    )
    parser_run.set_defaults(func=cmd_run)

    args = parser.parse_args()

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
