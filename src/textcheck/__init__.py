"""textcheck: content-addressed text storage and analysis services."""

__version__ = "0.1.0"
