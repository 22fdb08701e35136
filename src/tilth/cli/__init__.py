"""Command-line interface for tilth."""
