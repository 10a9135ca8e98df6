"""Test doubles for ctxpack collaborators."""
