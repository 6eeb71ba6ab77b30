"""Command-line interface for huddle."""
