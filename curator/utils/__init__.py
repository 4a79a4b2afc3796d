"""Shared utilities."""

from curator.utils.best_effort import run_best_effort

__all__ = ["run_best_effort"]
