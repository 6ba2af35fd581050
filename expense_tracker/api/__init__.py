"""REST backend persisting expense records."""

__all__ = [
    "database",
    "models",
    "crud",
    "server",
]
