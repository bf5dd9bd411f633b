"""Command-line interface for the Mindly tutor."""
