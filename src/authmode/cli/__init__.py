"""Command-line interface for authmode."""
