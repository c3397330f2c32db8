"""Turn TODO markers introduced by pushed commits into tracked issues."""

__version__ = "0.1.0"
