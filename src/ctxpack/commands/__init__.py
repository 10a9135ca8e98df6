"""CLI command modules for ctxpack."""
