"""Reconstruct login sessions from wtmp accounting logs."""

__version__ = "0.1.0"
