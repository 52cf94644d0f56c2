"""Squash league results: match reporting, standings and league membership."""

__version__ = "0.1.0"
