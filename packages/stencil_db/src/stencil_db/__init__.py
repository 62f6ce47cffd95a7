from .db import Database, get_database, get_db, normalize_database_url
from .models import Model, TimestampMixin
from .transaction import atomic

__all__ = [
    "Database",
    "Model",
    "TimestampMixin",
    "atomic",
    "get_database",
    "get_db",
    "normalize_database_url",
]
