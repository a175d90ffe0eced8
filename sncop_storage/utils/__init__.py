"""Shared utilities: configuration, logging, input validation and formatting."""
