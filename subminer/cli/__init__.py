"""Command-line interface for SubMiner."""
