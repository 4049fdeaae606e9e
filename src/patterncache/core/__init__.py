"""Core shared infrastructure for patterncache.

This package contains foundational utilities:
    - config: Application configuration management
    - console: Rich console output and logging
    - result: Error handling patterns
"""

from __future__ import annotations

from . import config, console

__all__ = ["config", "console"]
