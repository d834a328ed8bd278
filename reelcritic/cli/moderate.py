# =============================================================================
# reelcritic/cli/moderate.py — Batch Moderation Command
# =============================================================================
#
# Runs one moderation batch outside the web server, against the same wiring
# (reelcritic.main.build_components) the API uses:
#
#   python -m reelcritic.cli moderate                # configured batch size
#   python -m reelcritic.cli moderate --limit 200    # larger catch-up batch
#   python -m reelcritic.cli moderate --json         # machine-readable
#
# The batch goes through ModerationJob.run_batch(), so the single-flight
# guard applies exactly as it does for the scheduler and the HTTP trigger
# within one process.
# =============================================================================

"""Standalone CLI for running one batch of review moderation.

Usage::

    python -m reelcritic.cli moderate --limit 100
    python -m reelcritic.cli moderate --json

Exit code is 0 when every selected review was processed, 1 when any
failed or the batch was skipped.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence
from typing import Any

import structlog

from reelcritic.models.moderation import BatchResult

_STORE_KEYS = ("review_store", "user_store", "audit_store")


# ---------------------------------------------------------------------------
# Shared helpers (also used by the score command)
# ---------------------------------------------------------------------------


def suppress_logs() -> None:
    """Send structlog and stdlib logging to stderr at WARNING+ so stdout stays clean."""
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.WARNING),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.WARNING)
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


async def build_cli_components(quiet: bool) -> dict[str, Any]:
    """Build and initialise the application components for a one-shot command."""
    # Deferred: importing main reads settings and configures logging.
    from reelcritic import main as app_main
    from reelcritic.config.settings import validate_settings

    if quiet:
        suppress_logs()

    validate_settings(app_main.settings)
    components = app_main.build_components(app_main.settings, app_main.config)
    for key in _STORE_KEYS:
        await components[key].initialize()
    return components


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def format_result(result: BatchResult, json_output: bool) -> str:
    if json_output:
        return json.dumps(result.model_dump(), indent=2)
    if result.skipped:
        return "Moderation batch skipped: another batch is already running."
    return (
        f"Processed: {result.processed}  |  Removed: {result.removed}  |  "
        f"Flagged: {result.flagged}  |  Points adjusted: {result.points_adjusted}  |  "
        f"Failed: {result.failed}"
    )


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


async def _run(limit: int | None, json_output: bool, quiet: bool) -> int:
    components = await build_cli_components(quiet)
    result = await components["moderation_job"].run_batch(limit)
    print(format_result(result, json_output))
    return 1 if result.skipped or result.failed else 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m reelcritic.cli moderate",
        description="Moderate the oldest reviews the bot has not looked at yet.",
    )
    parser.add_argument(
        "--limit", "-n",
        type=int,
        default=None,
        help="Maximum number of reviews to process (default: MODERATION_BATCH_SIZE).",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Print the batch counters as JSON.",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress log output (implied by --json).",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    if args.limit is not None and args.limit < 1:
        print("Error: --limit must be at least 1", file=sys.stderr)
        return 2
    quiet = args.quiet or args.json_output
    return asyncio.run(_run(args.limit, args.json_output, quiet))


if __name__ == "__main__":
    sys.exit(main())
