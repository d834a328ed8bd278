# =============================================================================
# reelcritic/cli/score.py — Review Re-score Command
# =============================================================================
#
# Dry run of the configured scoring strategy against a stored review:
#
#   python -m reelcritic.cli score <review_id>
#   python -m reelcritic.cli score <review_id> --json
#
# Nothing is credited or written.  With the ai strategy the award is
# decayed by the review's age (exp(-days / 90)), which is how periodic
# re-evaluation values old reviews.
# =============================================================================

"""Print what a stored review would score today."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Sequence

from reelcritic.cli.moderate import build_cli_components
from reelcritic.models.scoring import PointsAward
from reelcritic.utils.errors import NotFoundError


def format_award(review_id: str, award: PointsAward, json_output: bool) -> str:
    if json_output:
        return json.dumps({"review_id": review_id, **award.model_dump(mode="json")}, indent=2)

    lines = [f"Review {review_id}: {award.points} points (multiplier {award.multiplier:g})"]
    for term, value in award.breakdown.model_dump(exclude_none=True).items():
        lines.append(f"  {term:<14} {value}")
    if award.feedback:
        lines.append(f"  feedback: {award.feedback}")
    return "\n".join(lines)


async def _run(review_id: str, json_output: bool, quiet: bool) -> int:
    components = await build_cli_components(quiet)
    try:
        award = await components["review_service"].rescore_review(review_id)
    except NotFoundError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1
    print(format_award(review_id, award, json_output))
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m reelcritic.cli score",
        description="Re-score a stored review with the configured strategy (no points are credited).",
    )
    parser.add_argument("review_id", type=str, help="Id of the review to score.")
    parser.add_argument("--json", action="store_true", dest="json_output", help="Print the award as JSON.")
    parser.add_argument("--quiet", "-q", action="store_true", help="Suppress log output (implied by --json).")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    return asyncio.run(_run(args.review_id, args.json_output, args.quiet or args.json_output))


if __name__ == "__main__":
    sys.exit(main())
