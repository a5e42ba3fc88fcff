"""Compliance risk scoring and supervised agent lifecycle."""

__version__ = "1.0.0"
