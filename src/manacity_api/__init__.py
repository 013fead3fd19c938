"""Manacity API: user address book service."""

__version__ = "0.1.0"
