"""ctxpack - budgeted context packages for AI requests.

Gathers the open document, other open documents, recent edits and a
project summary from a workspace, then fits them into a token budget.

Exports:
    __version__: Package version string.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.3.0"
