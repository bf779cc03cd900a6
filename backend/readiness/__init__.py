"""Readiness analytics engine for a personal health dashboard."""

__version__ = "0.1.0"
