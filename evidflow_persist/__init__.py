"""
Persistence facade exposing the XLSX-backed standards store.
"""

from .stores.base_store import (
    StoreConflictError,
    StoreError,
    StoreInitializationError,
    StoreLockedError,
)
from .stores.standards_store import StandardsStore, init_standards_store

__all__ = [
    "StandardsStore",
    "StoreConflictError",
    "StoreError",
    "StoreInitializationError",
    "StoreLockedError",
    "init_standards_store",
]
