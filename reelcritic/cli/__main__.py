# =============================================================================
# reelcritic/cli/__main__.py — Package Entry Point
# =============================================================================
#
# Dispatches `python -m reelcritic.cli <command> [options]` to the command
# modules:
#
#     python -m reelcritic.cli moderate --limit 100
#     python -m reelcritic.cli score <review_id>
#
# Each command can also be run directly, e.g. `python -m reelcritic.cli.moderate`.
# =============================================================================

"""Allow ``python -m reelcritic.cli <command>`` execution."""

from __future__ import annotations

import sys
from collections.abc import Callable, Sequence

from reelcritic.cli import moderate, score

COMMANDS: dict[str, Callable[[Sequence[str] | None], int]] = {
    "moderate": moderate.main,
    "score": score.main,
}


def main(argv: Sequence[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if not args or args[0] not in COMMANDS:
        print(f"usage: python -m reelcritic.cli {{{','.join(COMMANDS)}}} [options]", file=sys.stderr)
        return 2
    return COMMANDS[args[0]](args[1:])


if __name__ == "__main__":
    sys.exit(main())
