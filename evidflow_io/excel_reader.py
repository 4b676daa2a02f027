"""Spreadsheet input helpers."""

# Module responsibilities:
# - Provide a thin wrapper around pandas.read_excel / read_csv returning a raw table of strings.
# - Emit structured logs for traceability and future auditing.

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Union

import pandas as pd

logger = logging.getLogger(__name__)

SheetType = Union[str, int]

EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}
CSV_SUFFIXES = {".csv"}


def _cell_text(value: object) -> Optional[str]:
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return str(value)


def read_table(path: Path, sheet: SheetType = 0) -> List[List[Optional[str]]]:
    """Load the first (or given) sheet as rows of strings, header included.

    Args:
        path: Path to a ``.xlsx``/``.xls`` workbook or a ``.csv`` file.
        sheet: Sheet name or index for workbooks; ignored for CSV.

    Returns:
        One list per source row, the header row first. Empty cells are ``""``
        and trailing blank rows are kept; dropping them is the importer's job.

    Raises:
        FileNotFoundError: When the file does not exist.
        ValueError: When the suffix is unsupported or pandas cannot parse it.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Source file not found: {path}")

    suffix = path.suffix.lower()
    logger.info("Reading source table", extra={"path": str(path), "sheet": sheet})

    if suffix in EXCEL_SUFFIXES:
        frame = pd.read_excel(path, sheet_name=sheet, header=None, dtype=str, keep_default_na=False)
    elif suffix in CSV_SUFFIXES:
        try:
            frame = pd.read_csv(
                path,
                header=None,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=False,
                encoding="utf-8-sig",
            )
        except pd.errors.EmptyDataError:
            return []
    else:
        raise ValueError(f"unsupported input file: {path}")

    if isinstance(frame, dict):
        # pandas returns a dict when sheet_name is a list; this API expects a single sheet.
        raise ValueError("read_table expects a single sheet; received multiple sheets")

    table = [[_cell_text(value) for value in row] for row in frame.itertuples(index=False, name=None)]
    logger.info("Source table loaded", extra={"rows": len(table), "columns": frame.shape[1]})
    return table
