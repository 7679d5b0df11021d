"""Diagnostics bus and event type constants."""
