"""Logging and metrics setup for nodewatch."""
