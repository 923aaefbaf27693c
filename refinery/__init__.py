"""Refinery - article acquisition and enhancement pipeline."""

__version__ = "0.1.0"
