"""
Storage implementations.

Provides implementations of the Storage interface for persisting the rating
database.

Available implementations:
- JSONStorage: Persists the database to a single JSON file
- MemoryStorage: Keeps the database in process memory
"""

from .json_storage import JSONStorage
from .memory_storage import MemoryStorage

__all__ = ["JSONStorage", "MemoryStorage"]
