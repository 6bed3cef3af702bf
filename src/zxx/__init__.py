"""The Z++ language front end."""

__version__ = "0.1.0"
