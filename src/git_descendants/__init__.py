"""Compute and query the descendants of commits in a git repository."""

__version__ = "0.1.0"
