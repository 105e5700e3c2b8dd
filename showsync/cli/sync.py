"""Run a show-list sync from the shell.

Usage:
    python -m showsync.cli.sync popular --pages 3
    python -m showsync.cli.sync watched --db /tmp/showsync.db
    python -m showsync.cli.sync trending --reset
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import replace

from showsync.adapters.trakt import TraktClient, build_page_sources
from showsync.adapters.trakt.models import Extended
from showsync.config import AppConfig, load_config
from showsync.core.logging_utils import setup_json_logging
from showsync.db.session import DatabaseSessionManager
from showsync.sync.constants import SyncKind
from showsync.sync.models import SyncResult, SyncState
from showsync.sync.orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)

__all__ = ["main", "run_sync_cli"]


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Synchronize a remote show list into the local database",
        allow_abbrev=False,
    )
    parser.add_argument(
        "kind",
        choices=[kind.value for kind in SyncKind],
        help="Which remote list to synchronize.",
    )
    parser.add_argument(
        "--pages",
        type=int,
        help="Stop after this many pages (overrides SYNC_MAX_PAGES).",
    )
    parser.add_argument(
        "--start-page",
        type=int,
        default=0,
        help="Zero-based page to start from (default: 0).",
    )
    parser.add_argument(
        "--db",
        dest="db_path",
        help="Override the configured SQLite path for this run.",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override the configured log level for this run.",
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Drop the stored pages of this list before syncing.",
    )
    return parser.parse_args(argv)


def _prepare_config(args: argparse.Namespace) -> AppConfig:
    """Load configuration and apply command-line overrides."""
    try:
        cfg = load_config()
    except RuntimeError as exc:
        raise SystemExit(f"Configuration error: {exc}") from exc

    if args.pages is not None:
        if args.pages <= 0:
            raise SystemExit("--pages must be positive")
        cfg = replace(cfg, sync=cfg.sync.model_copy(update={"max_pages": args.pages}))
    if args.db_path:
        cfg = replace(cfg, database=cfg.database.model_copy(update={"path": args.db_path}))
    if args.log_level:
        cfg = replace(cfg, runtime=cfg.runtime.model_copy(update={"log_level": args.log_level}))
    return cfg


async def run_sync_cli(args: argparse.Namespace, cfg: AppConfig) -> SyncResult:
    """Migrate the database and run one sync for ``args.kind``."""
    if args.start_page < 0:
        raise SystemExit("--start-page must not be negative")

    session = DatabaseSessionManager(
        path=cfg.database.path,
        operation_timeout=cfg.database.operation_timeout,
        max_retries=cfg.database.max_retries,
    )
    session.migrate()
    try:
        async with TraktClient(
            cfg.trakt.api_url,
            cfg.trakt.client_id,
            access_token=cfg.trakt.access_token,
            timeout=cfg.trakt.timeout_sec,
        ) as client:
            sources = build_page_sources(client, Extended(cfg.trakt.extended))
            orchestrator = SyncOrchestrator.from_config(session, sources, cfg.sync)
            if args.reset:
                await orchestrator.clear(args.kind)
            return await orchestrator.sync(args.kind, start_page=args.start_page)
    finally:
        session.close()


def main(argv: list[str] | None = None) -> int:
    """Entry point for ``python -m showsync.cli.sync``."""
    args = parse_args(argv)
    cfg = _prepare_config(args)
    # stdout carries the result document
    setup_json_logging(cfg.runtime.log_level, cfg.runtime.log_file, stream=sys.stderr)

    try:
        result = asyncio.run(run_sync_cli(args, cfg))
    except KeyboardInterrupt:  # pragma: no cover - user cancelled
        return 1
    except Exception as exc:
        logger.exception("cli_sync_failed", exc_info=exc)
        return 1

    sys.stdout.write(result.model_dump_json(indent=2) + "\n")
    return 0 if result.state is SyncState.DONE else 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
