"""Event-sourced position and pool analytics for margin lending."""

__version__ = "0.1.0"
