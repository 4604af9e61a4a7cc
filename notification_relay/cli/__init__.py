"""Command-line interface for the notification relay."""
