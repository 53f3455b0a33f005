"""Utilities for broker addressing and operation polling."""
