"""patterncache - learns reusable patterns from generative-AI interactions.

This package provides the pattern-learning service behind the `pcache`
command-line tool: signature extraction, a confidence-scored pattern store,
similarity retrieval, oracle-assisted meta-learning and history ingestion.

Exports:
    __version__: Package version string.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
