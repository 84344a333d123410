"""Remote command-execution service."""

__version__ = "0.1.0"
