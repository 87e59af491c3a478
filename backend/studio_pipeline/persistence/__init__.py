"""
Persistence layer for pipeline records.

JobRepository is the interface the pipeline uses. InMemoryRepository backs
tests and dry runs; SQLiteRepository backs the service.
"""

from .errors import PersistenceError, SchemaError, LoadError, SaveError
from .repository import JobRepository
from .memory import InMemoryRepository
from .sqlite import SQLiteRepository

__all__ = [
    "PersistenceError",
    "SchemaError",
    "LoadError",
    "SaveError",
    "JobRepository",
    "InMemoryRepository",
    "SQLiteRepository",
]
