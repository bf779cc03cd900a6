"""Adapters for external health-data exports."""
