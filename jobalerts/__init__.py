"""Job alert matching and notification service."""

__version__ = "1.0.0"
