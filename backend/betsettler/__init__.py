"""Betsettler: settlement worker for first-event wagers across paired games."""

__version__ = "0.1.0"
__author__ = "Betsettler Team"

__all__ = ["__version__", "__author__"]
