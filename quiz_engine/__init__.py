"""Quiz attempt lifecycle and performance analytics engine."""

__version__ = "0.1.0"
