"""Excel output helpers."""

# Module responsibilities:
# - Write a header row plus data rows into a fresh worksheet via openpyxl.
# - Apply optional column widths so generated templates are readable.

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional, Sequence

from openpyxl import Workbook
from openpyxl.utils import get_column_letter

logger = logging.getLogger(__name__)


def write_rows(
    path: Path,
    headers: Sequence[str],
    rows: Iterable[Sequence[object]],
    *,
    sheet: str = "Sheet1",
    column_widths: Optional[Sequence[Optional[int]]] = None,
) -> Path:
    """Write ``headers`` and ``rows`` to a new workbook at ``path``.

    Args:
        path: Destination ``.xlsx`` path; parent directories are created.
        headers: Values for the first row.
        rows: Data rows, written in order.
        sheet: Title of the single worksheet.
        column_widths: Optional width per column; ``None`` keeps the default.

    Returns:
        The path written.
    """

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    wb = Workbook()
    ws = wb.active
    ws.title = sheet
    ws.append(list(headers))
    count = 0
    for row in rows:
        ws.append(list(row))
        count += 1

    for idx, width in enumerate(column_widths or (), start=1):
        if width:
            ws.column_dimensions[get_column_letter(idx)].width = width

    wb.save(path)
    logger.info("Workbook written", extra={"path": str(path), "rows": count, "sheet": sheet})
    return path
