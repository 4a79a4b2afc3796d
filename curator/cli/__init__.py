"""Command-line interface for Curator."""
