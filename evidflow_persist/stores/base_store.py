"""
RESPONSIBILITIES
- Define shared interfaces and exceptions for XLSX-based stores.
- Outline the workflow for init/create/query/export used by concrete stores.
PROCESS OVERVIEW
1. init_store -> resolve target path, ensure directories and workbook skeleton exist.
2. create -> insert a single record, refusing one whose primary key already exists.
3. query -> filter rows read from the sheet.
4. export -> return rows for one parent context in display order.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Mapping


class StoreError(RuntimeError):
    """Base exception type for persistence-layer failures."""


class StoreInitializationError(StoreError):
    """Raised when a store cannot be initialized due to missing prerequisites."""


class StoreConflictError(StoreError):
    """Raised when a record with the same primary key already exists."""


class StoreLockedError(StoreError):
    """Raised when a target workbook is locked by another process."""


class BaseStore(ABC):
    """Abstract class shared by concrete XLSX-backed stores."""

    sheet_name: str
    columns: tuple[str, ...]

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def init_store(self) -> Path:
        """Ensure backing workbook exists, returning absolute path."""

    @abstractmethod
    def create(self, record: object) -> Mapping[str, object]:
        """Insert a single record, raising ``StoreConflictError`` on key collisions."""

    @abstractmethod
    def query(self, params: Mapping[str, object]) -> list[dict[str, object]]:
        """Return stored rows matching every key/value in ``params``."""
