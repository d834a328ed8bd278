"""Concrete adapters for the interfaces in ``reelcritic.interfaces``."""
