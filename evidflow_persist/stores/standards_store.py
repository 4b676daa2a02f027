"""
RESPONSIBILITIES
- Persist accreditation standards into a single XLSX workbook.
- Enforce code uniqueness per (program, organization) at insert time.
PROCESS OVERVIEW
1. init_store() ensures standards.xlsx exists with the standards sheet header.
2. create() checks the (program, organization, code) key under the workbook lock and appends.
3. query()/export() read the sheet and filter in memory.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, is_dataclass
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Mapping

from evidflow_persist.stores.base_store import (
    BaseStore,
    StoreConflictError,
    StoreInitializationError,
)
from evidflow_persist.utils.excel_io import append_row, ensure_workbook, read_sheet, workbook_lock

_STANDARDS_WORKBOOK = "standards.xlsx"
_STANDARDS_SHEET = "standards"
_STANDARDS_COLUMNS: tuple[str, ...] = (
    "program_id",
    "organization_id",
    "code",
    "name",
    "description",
    "order",
    "weight",
    "objectives",
    "guidelines",
    "status",
    "source_row",
    "created_at",
)


def _cell(value: object) -> object:
    if value is None:
        return ""
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    if isinstance(value, (list, tuple)):
        return "; ".join(str(item) for item in value)
    return value


def _sort_order(row: Mapping[str, object]) -> tuple[int, str]:
    try:
        order = int(row.get("order") or 0)
    except (TypeError, ValueError):
        order = 0
    return order, str(row.get("code") or "")


class StandardsStore(BaseStore):
    """XLSX-backed store for standards created by imports."""

    sheet_name = _STANDARDS_SHEET
    columns = _STANDARDS_COLUMNS

    def __init__(self, path: Path | str, *, logger: logging.Logger | None = None) -> None:
        super().__init__(logger=logger or logging.getLogger(__name__))
        target = Path(path).expanduser()
        if target.suffix.lower() != ".xlsx":
            target = target / _STANDARDS_WORKBOOK
        self.path = target.resolve()

    def init_store(self) -> Path:
        try:
            ensure_workbook(self.path, self.sheet_name, self.columns)
        except OSError as exc:
            raise StoreInitializationError(str(exc)) from exc
        return self.path

    def create(self, record: object) -> dict[str, object]:
        """Insert one standard; ``record`` is a mapping or a dataclass payload."""

        payload = asdict(record) if is_dataclass(record) else dict(record)  # type: ignore[arg-type]
        row = {column: _cell(payload.get(column)) for column in self.columns}
        row["created_at"] = datetime.now().replace(microsecond=0).isoformat()
        key = (str(row["program_id"]), str(row["organization_id"]), str(row["code"]))
        if not all(key):
            raise ValueError("program_id, organization_id and code are required")

        self.init_store()
        with workbook_lock(self.path):
            existing = read_sheet(self.path, self.sheet_name, self.columns, use_lock=False)
            for current in existing:
                if (str(current["program_id"]), str(current["organization_id"]), str(current["code"])) == key:
                    raise StoreConflictError(f"standard code {key[2]} already exists")
            append_row(self.path, self.sheet_name, row, self.columns)
        self.logger.info("store.create code=%s program=%s organization=%s", key[2], key[0], key[1])
        return row

    def query(self, params: Mapping[str, object]) -> list[dict[str, object]]:
        rows = read_sheet(self.path, self.sheet_name, self.columns)
        wanted = {k: str(v) for k, v in params.items() if v is not None}
        return [row for row in rows if all(str(row.get(k, "")) == v for k, v in wanted.items())]

    def export(self, program_id: str, organization_id: str) -> list[dict[str, object]]:
        """Return every standard stored for one program/organization, in display order."""

        rows = self.query({"program_id": program_id, "organization_id": organization_id})
        return sorted(rows, key=_sort_order)


def init_standards_store(path: Path | str) -> Path:
    return StandardsStore(path).init_store()
