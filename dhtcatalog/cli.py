#!/usr/bin/env python3
"""
Catalog spider entry point.

Usage:
    dhtcatalog-spider --config config.json --feed-factory mydht.feeds:build
    dhtcatalog-spider --replay announcements.jsonl --port 6881
    dhtcatalog-spider-restart --config config.json --restart-after 100
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .core.config import CatalogConfig, LifecyclePolicy
from .core.context import RuntimeContext
from .core.database_manager import DatabaseManager
from .core.errors import FatalSetupError
from .core.logging_setup import configure_logging
from .spider.feed import build_feed
from .spider.ingest_loop import IngestLoop
from .spider.lifecycle import SelfRestartSupervisor, install_signal_handlers

logger = logging.getLogger(__name__)


def build_parser(default_policy: LifecyclePolicy = LifecyclePolicy.GRACEFUL) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="DHT torrent metadata catalog spider")
    parser.add_argument("--config", type=Path, default=None,
                        help="Path to config.json (default: ./config.json)")
    parser.add_argument("--port", type=int, default=None, help="DHT listen port")
    parser.add_argument("--log-file", type=Path, default=Path("logger.log"),
                        help="Operational log file")
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    parser.add_argument("--policy", choices=[p.value for p in LifecyclePolicy],
                        default=default_policy.value, help="Lifecycle policy")
    parser.add_argument("--restart-after", type=int, default=None,
                        help="Announcements to process before self-restart")
    parser.add_argument("--replay", default=None, metavar="PATH",
                        help="Replay recorded announcements from a JSON-lines file ('-' for stdin)")
    parser.add_argument("--feed-factory", default=None, metavar="MODULE:CALLABLE",
                        help="Factory that builds the DHT announce feed")
    parser.add_argument("--init-schema", action="store_true",
                        help="Create catalog tables before ingesting")
    return parser


def run(args: argparse.Namespace) -> int:
    policy = LifecyclePolicy(args.policy)

    configure_logging(args.log_file, args.log_level)

    config = CatalogConfig.load(
        config_file=args.config,
        port=args.port,
        policy=policy,
        restart_after=args.restart_after,
        feed_factory=args.feed_factory,
        replay_path=args.replay,
        log_file=args.log_file,
        log_level=args.log_level,
    )

    database = DatabaseManager(config.database).open()
    context = RuntimeContext.build(config, database)
    try:
        if args.init_schema:
            database.ensure_schema()
        feed = build_feed(config.spider)
    except BaseException:
        context.close()
        raise

    supervisor = None
    restart_after = None
    if policy is LifecyclePolicy.SELF_RESTART:
        supervisor = SelfRestartSupervisor(config.to_argv(), startup_grace=config.spider.startup_grace)
        restart_after = config.spider.restart_after

    loop = IngestLoop(context, feed, restart_after=restart_after, supervisor=supervisor)
    install_signal_handlers(loop)

    logger.info(f"DHT spider started on port {config.spider.port} (policy={policy.value})")
    loop.run()
    logger.info("Spider stopped")
    return 0


def main(argv: Optional[List[str]] = None,
         default_policy: LifecyclePolicy = LifecyclePolicy.GRACEFUL) -> int:
    args = build_parser(default_policy).parse_args(argv)
    try:
        return run(args)
    except FatalSetupError as e:
        logging.getLogger("dhtcatalog").critical(f"Startup failed: {e}")
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1


def main_restart(argv: Optional[List[str]] = None) -> int:
    return main(argv, default_policy=LifecyclePolicy.SELF_RESTART)


def console_main():
    sys.exit(main())


def console_main_restart():
    sys.exit(main_restart())


if __name__ == "__main__":
    console_main()
