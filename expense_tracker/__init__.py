"""Personal expense tracker: REST backend, HTTP client and console front-end."""

__version__ = "1.0.0"

__all__ = ["__version__"]
