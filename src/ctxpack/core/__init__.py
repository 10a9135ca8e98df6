"""Core shared infrastructure and the context core for ctxpack.

This package contains:
    - config: Application configuration management
    - console: Rich console output and logging
    - result: Result types and the error hierarchy
    - tokens, budget: Cost estimation, truncation and budget allocation
    - history, structure, events: Context sources and change notification
    - aggregator: Concurrent context gathering
"""

from __future__ import annotations

from . import config, console

__all__ = ["config", "console"]
