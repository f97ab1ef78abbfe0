"""Command-line interface for previewing and simulating partnerships."""
