"""CLI command modules for the pcache toolkit.

    - patterns: Pattern learning, retrieval and reporting
"""

from __future__ import annotations

from . import patterns

__all__ = ["patterns"]
