"""`evidflow_io` top-level package exports the spreadsheet I/O helpers."""

# Module responsibilities:
# - Re-export the table reader and worksheet writer so consumers have a stable API surface.

from __future__ import annotations

from .excel_reader import read_table
from .excel_writer import write_rows

__all__ = [
    "read_table",
    "write_rows",
]

__version__ = "0.1.0"
