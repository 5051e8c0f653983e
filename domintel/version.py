"""Version information for domintel."""

__version__ = "1.0.0"
