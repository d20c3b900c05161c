"""
Persistence adapters.

- PersistenceAdapter: Base class (save_partial / save_complete returning futures)
- MockStore: In-memory store (mock-backend mode)
- HttpStore: REST backend
- CsvStore: Local CSV files
"""

from .adapter import PersistenceAdapter, Record
from .mock_store import MockStore
from .http_store import HttpStore
from .csv_store import CsvStore
from .factory import create_store

__all__ = [
    'PersistenceAdapter',
    'Record',
    'MockStore',
    'HttpStore',
    'CsvStore',
    'create_store',
]
