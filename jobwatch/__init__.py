"""Background job lifecycle monitoring for remote data-platform operations."""

__version__ = "0.1.0"
