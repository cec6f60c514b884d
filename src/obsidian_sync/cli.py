#!/usr/bin/env python3
"""
CLI for the vault watcher.

Usage:
    obsidian-sync watch --vault /path/to/vault
    obsidian-sync debug --vault /path/to/vault
    python -m obsidian_sync watch
"""

import argparse
import logging
import os
import signal
import sys
import time
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .config import AppConfig
from .dispatcher import LoggingSink
from .exceptions import ConfigError, WatcherError
from .logging_config import setup_logging
from .process import Watcher

logger = logging.getLogger("obsidian_sync.cli")


class GracefulShutdown:
    """Handle graceful shutdown on SIGINT/SIGTERM."""

    def __init__(self):
        self.should_exit = False
        signal.signal(signal.SIGINT, self._handler)
        signal.signal(signal.SIGTERM, self._handler)

    def _handler(self, signum, frame):
        logger.info("Received shutdown signal, stopping...")
        self.should_exit = True


def load_config(args) -> AppConfig:
    """Load configuration from .env and the environment, applying CLI overrides."""
    load_dotenv(args.env_file)
    env = dict(os.environ)
    if args.vault:
        env["VAULT_PATH"] = args.vault
    if args.debounce is not None:
        env["DEBOUNCE_MS"] = str(args.debounce)
    return AppConfig.load(env)


def run_watcher(config: AppConfig, include_checksum: bool = False) -> int:
    """Watch the vault until a shutdown signal arrives."""
    watcher = Watcher(
        config.vault_path,
        config=config.watcher,
        sink=LoggingSink(include_checksum=include_checksum),
    )

    try:
        watcher.start_async()
    except WatcherError as e:
        logger.error(f"Failed to start watcher: {e}")
        return 1

    shutdown = GracefulShutdown()
    logger.info("Press Ctrl+C to stop")

    try:
        while not shutdown.should_exit:
            time.sleep(0.2)
    finally:
        watcher.stop()

    return 0


def list_vault(vault_path: Path, limit: int = 5) -> List[str]:
    """Describe the first few entries of the vault."""
    with os.scandir(vault_path) as it:
        entries = sorted(it, key=lambda e: e.name)
    lines = [f"{entry.name} (dir: {entry.is_dir()})" for entry in entries[:limit]]
    if len(entries) > limit:
        lines.append(f"... and {len(entries) - limit} more")
    return lines


def cmd_watch(args, config: AppConfig) -> int:
    """Run the watcher."""
    logger.info(f"Obsidian Sync v{config.version}")
    logger.info(f"Configuration loaded {config}")
    return run_watcher(config, include_checksum=args.checksums)


def cmd_debug(args, config: AppConfig) -> int:
    """Inspect the vault, then run the watcher with debug logging."""
    logger.info("Debug Mode: Obsidian Sync")
    logger.info(f"Config: {config}")
    logger.info(f"Checking vault path: {config.vault_path}")

    try:
        lines = list_vault(config.vault_path)
    except OSError as e:
        logger.error(f"Cannot read vault directory: {e}")
        return 1

    for line in lines:
        logger.info(f"  {line}")

    logger.info("Watcher starting, try creating or editing .md files in your vault")
    return run_watcher(config, include_checksum=args.checksums)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="obsidian-sync",
        description="Watch a markdown vault and report file changes",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("watch", "Watch the vault and log changes"),
        ("debug", "List vault entries, then watch with debug logging"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--vault", help="Vault directory (overrides VAULT_PATH)")
        sub.add_argument("--debounce", type=int, help="Quiet period in milliseconds")
        sub.add_argument("--checksums", action="store_true", help="Log SHA-256 of changed notes")
        sub.add_argument("--env-file", type=Path, default=None, help="Path to a .env file")
        sub.add_argument("--no-log-file", action="store_true", help="Only log to the console")
        sub.add_argument("--debug", action="store_true", help="Enable debug logging")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args)
    except ConfigError as e:
        print(f"Failed to load config: {e}", file=sys.stderr)
        return 1

    level = "debug" if args.debug or args.command == "debug" else config.log_level
    log_file = None if args.no_log_file else Path(config.log_file)
    setup_logging(level=level, log_file=log_file)

    if args.command == "debug":
        return cmd_debug(args, config)
    return cmd_watch(args, config)


if __name__ == "__main__":
    sys.exit(main())
