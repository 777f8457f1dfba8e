"""Records of organisational units and physical spaces in SQLite, with hierarchy queries."""

__version__ = "1.0.0"

__all__ = [
    "catalogs",
    "database",
    "dependencias",
    "espacios",
    "hierarchy",
    "padres",
    "querying",
]