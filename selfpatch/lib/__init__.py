"""Shared infrastructure: logging, exceptions and the clock."""
