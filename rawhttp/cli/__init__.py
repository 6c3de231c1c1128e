"""Command-line interface for rawhttp."""
