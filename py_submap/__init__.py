"""Resample fantasy maps to a new resolution or projection."""

__version__ = "0.1.0"
