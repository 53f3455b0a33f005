"""Command line interface for Broker CLI."""
