#!/usr/bin/env python3
"""Standalone runner for the Geyser accounts sink.

Loads the plugin configuration and feeds newline-delimited JSON account
updates from stdin through the sink, without a running validator.
"""

import argparse
import json
import logging
import os
import sys
from typing import Any, TextIO

# Configure logging before any other imports create loggers
def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the application.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level: int = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

# Get logger for this module
logger = logging.getLogger(__name__)

from src.geyser_sink.models import AccountInfoVersion, AccountUpdateEvent, OutcomeStatus
from src.geyser_sink.plugin import GeyserSinkPlugin, PluginConfigError
from src.geyser_sink.utils.identity_codec import decode


def parse_event(raw: dict[str, Any]) -> AccountUpdateEvent:
    """Build an account update from one JSON line.

    Raises:
        ValueError: If a field is missing or malformed
    """
    if not isinstance(raw, dict):
        raise ValueError("Expected a JSON object")

    try:
        return AccountUpdateEvent(
            address=decode(raw["pubkey"]),
            owner=decode(raw["owner"]),
            data=bytes.fromhex(raw.get("data", "")),
            executable=bool(raw.get("executable", False)),
            lamports=int(raw.get("lamports", 0)),
            rent_epoch=int(raw.get("rent_epoch", 0)),
            slot=int(raw.get("slot", 0)),
            version=AccountInfoVersion(raw.get("version", AccountInfoVersion.V0_0_3.value))
        )
    except KeyError as e:
        raise ValueError(f"Missing field {e}") from e
    except TypeError as e:
        raise ValueError(f"Malformed field: {e}") from e


def run(plugin: GeyserSinkPlugin, stream: TextIO) -> dict[OutcomeStatus, int]:
    """Feed every line of ``stream`` to the plugin and count the outcomes."""
    counts: dict[OutcomeStatus, int] = {status: 0 for status in OutcomeStatus}

    for line_number, line in enumerate(stream, start=1):
        if not (line := line.strip()):
            continue
        try:
            event = parse_event(json.loads(line))
        except ValueError as e:
            logger.warning(f"Skipping line {line_number}: {e}")
            continue

        outcome = plugin.update_account(event, event.slot)
        counts[outcome.status] += 1

    return counts


def main() -> None:
    """Main entry point for the standalone sink.

    Raises:
        SystemExit: On configuration errors
    """
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Geyser Accounts Sink - Forward account updates to Supabase",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Environment Variables:
  GEYSER_SINK_CONFIG   - Path of the JSON config file (can be overridden with --config)
  LOG_LEVEL            - Logging level (can be overridden with --log-level)

Input: one JSON object per line on stdin with pubkey, owner (base58),
data (hex), executable, lamports, rent_epoch, slot and optional version.
        """
    )
    parser.add_argument(
        "--config",
        default=os.environ.get("GEYSER_SINK_CONFIG"),
        help="Path of the JSON configuration file"
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level (default: INFO)"
    )
    args: argparse.Namespace = parser.parse_args()

    setup_logging(args.log_level)

    if not args.config:
        logger.error("No configuration file given (--config or GEYSER_SINK_CONFIG)")
        sys.exit(1)

    logger.info("=== Geyser Accounts Sink Starting ===")
    plugin: GeyserSinkPlugin = GeyserSinkPlugin()

    try:
        plugin.on_load(args.config, is_startup=True)
    except PluginConfigError as e:
        logger.error(f"Configuration Error: {e} ({e.__cause__})")
        logger.error("Expected a JSON file with:")
        logger.error("  - supabase_url: PostgREST endpoint of the remote store")
        logger.error("  - supabase_key: API key")
        logger.error("  - programs: (optional) list of base58 program ids")
        sys.exit(1)

    try:
        counts = run(plugin, sys.stdin)
        logger.info(
            "Done: " + ", ".join(f"{status.value}={count}" for status, count in counts.items())
        )
    except KeyboardInterrupt:
        logger.info("\nReceived interrupt signal, shutting down gracefully...")
    finally:
        plugin.on_unload()


if __name__ == "__main__":
    main()
