"""
RESPONSIBILITIES
- Guard store workbooks against concurrent writers (threads and processes).
- Read and append rows through openpyxl with atomic saves.
PROCESS OVERVIEW
1. workbook_lock() takes a per-path RLock and, for the outermost holder, a sibling .lock file.
2. ensure_workbook() creates the workbook or the sheet with its header row.
3. read_sheet() maps every non-blank row onto the store's column names.
4. append_row() appends one row and swaps the saved file into place.
"""

from __future__ import annotations

import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, Mapping, Sequence

from openpyxl import Workbook, load_workbook

from evidflow_persist.stores.base_store import StoreLockedError

_PATH_LOCKS: dict[Path, threading.RLock] = {}
_PATH_LOCKS_GUARD = threading.Lock()
_HELD = threading.local()


def _path_lock(path: Path) -> threading.RLock:
    with _PATH_LOCKS_GUARD:
        return _PATH_LOCKS.setdefault(path, threading.RLock())


def _held_counts() -> dict[Path, int]:
    counts = getattr(_HELD, "counts", None)
    if counts is None:
        counts = _HELD.counts = {}
    return counts


def lock_file_for(path: Path) -> Path:
    return path.with_name(path.name + ".lock")


@contextmanager
def workbook_lock(path: Path, *, timeout: float = 10) -> Iterator[None]:
    """Hold exclusive access to ``path`` for the duration of the block.

    Nested use from the same thread is allowed; only the outermost holder
    creates and removes the lock file.
    """

    target = Path(path).resolve()
    guard = _path_lock(target)
    if not guard.acquire(timeout=timeout):
        raise StoreLockedError(f"timed out after {timeout}s waiting for {target.name}")

    counts = _held_counts()
    marker = lock_file_for(target)
    fd: int | None = None
    try:
        if counts.get(target, 0) == 0:
            try:
                fd = os.open(marker, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
            except FileExistsError as exc:
                raise StoreLockedError(f"{target.name} is locked by another process ({marker})") from exc
            os.write(fd, str(os.getpid()).encode("ascii"))
        counts[target] = counts.get(target, 0) + 1
        try:
            yield
        finally:
            counts[target] -= 1
    finally:
        if fd is not None:
            os.close(fd)
            marker.unlink(missing_ok=True)
        guard.release()


def _save(workbook: Workbook, path: Path) -> None:
    staging = path.with_name(path.name + ".tmp")
    workbook.save(staging)
    os.replace(staging, path)


def ensure_workbook(path: Path, sheet_name: str, columns: Sequence[str]) -> None:
    """Create ``path`` and/or ``sheet_name`` with ``columns`` as its header row."""

    path.parent.mkdir(parents=True, exist_ok=True)
    with workbook_lock(path):
        if path.exists():
            workbook = load_workbook(path)
            try:
                if sheet_name in workbook.sheetnames:
                    return
                workbook.create_sheet(title=sheet_name).append(list(columns))
                _save(workbook, path)
            finally:
                workbook.close()
            return

        workbook = Workbook()
        sheet = workbook.active
        sheet.title = sheet_name
        sheet.append(list(columns))
        _save(workbook, path)


def _is_blank_row(values: Iterable[object]) -> bool:
    return all(value is None or str(value).strip() == "" for value in values)


def _load_rows(path: Path, sheet_name: str, columns: Sequence[str]) -> list[dict[str, object]]:
    if not path.exists():
        return []
    workbook = load_workbook(path, read_only=True, data_only=True)
    try:
        if sheet_name not in workbook.sheetnames:
            return []
        values = workbook[sheet_name].iter_rows(values_only=True)
        header = next(values, None)
        if header is None:
            return []
        positions = {str(name).strip(): idx for idx, name in enumerate(header) if name is not None}
        rows: list[dict[str, object]] = []
        for raw in values:
            if raw is None or _is_blank_row(raw):
                continue
            row: dict[str, object] = {}
            for column in columns:
                idx = positions.get(column)
                value = raw[idx] if idx is not None and idx < len(raw) else None
                row[column] = "" if value is None else value
            rows.append(row)
        return rows
    finally:
        workbook.close()


def read_sheet(path: Path, sheet_name: str, columns: Sequence[str], *, use_lock: bool = True) -> list[dict[str, object]]:
    """Return the sheet's rows keyed by ``columns``; missing cells read as ``""``."""

    if not use_lock:
        return _load_rows(path, sheet_name, columns)
    with workbook_lock(path):
        return _load_rows(path, sheet_name, columns)


def append_row(path: Path, sheet_name: str, row: Mapping[str, object], columns: Sequence[str]) -> None:
    """Append ``row`` in ``columns`` order; the caller holds ``workbook_lock``."""

    workbook = load_workbook(path)
    try:
        workbook[sheet_name].append([row.get(column, "") for column in columns])
        _save(workbook, path)
    finally:
        workbook.close()
