"""Command line entry point for the ElkarBackup dispatch service."""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    print(f"Starting ElkarBackup dispatch service on {args.host}:{args.port}")
    uvicorn.run(
        "elkarbackup.main:app",
        host=args.host,
        port=args.port,
        reload=False,
        log_level="info",
    )
    return 0


async def _run_tick() -> None:
    from elkarbackup.dependencies import get_log_handler, get_tick_service

    log_handler = get_log_handler()
    package_logger = logging.getLogger("elkarbackup")
    package_logger.addHandler(log_handler)
    try:
        await get_tick_service().tick()
    finally:
        package_logger.removeHandler(log_handler)
        await log_handler.flush_records()


def _tick(args: argparse.Namespace) -> int:
    from elkarbackup.utils.migrations import run_migrations

    if not args.skip_migrations and not run_migrations():
        print("Exiting due to migration failure")
        return 1
    asyncio.run(_run_tick())
    return 0


def _migrate(args: argparse.Namespace) -> int:
    from elkarbackup.utils.migrations import run_migrations

    return 0 if run_migrations() else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="elkarbackup", description="ElkarBackup job queue and command mailbox"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the web service and worker")
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.set_defaults(func=_serve)

    tick_parser = subparsers.add_parser(
        "tick", help="Dispatch pending messages and run queued jobs once"
    )
    tick_parser.add_argument(
        "--skip-migrations",
        action="store_true",
        help="Don't upgrade the database before the tick",
    )
    tick_parser.set_defaults(func=_tick)

    migrate_parser = subparsers.add_parser("migrate", help="Run database migrations")
    migrate_parser.set_defaults(func=_migrate)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    # Settings are read from the environment at import time
    load_dotenv()
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout,
    )

    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    try:
        return args.func(args)
    except Exception as e:
        logger.error(f"{args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
