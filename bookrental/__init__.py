"""Book rental tracker with a shared, polled JSON document."""

__version__ = "0.1.0"
