"""BookNest admin: edit catalog books."""

__version__ = "0.1.0"
