"""Command-line interface for ssrs-admin."""
