# =============================================================================
# reelcritic/cli/__init__.py — CLI Module Overview
# =============================================================================
#
# One-shot operator commands.  They build the same components as the web
# server (reelcritic.main.build_components) instead of a separate DI setup,
# and import that module lazily so `--help` stays fast.
#
#   1. MODERATE (moderate.py)
#      Runs one moderation batch over unmoderated reviews.
#
#   2. SCORE (score.py)
#      Dry-run re-score of a stored review with the configured strategy.
#
# All commands use argparse.
# =============================================================================

"""CLI tools for reelcritic.

- ``python -m reelcritic.cli moderate`` — run one moderation batch.
- ``python -m reelcritic.cli score`` — re-score a stored review.
"""
