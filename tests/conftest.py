from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import evidflow.core.logger as core_logger
from evidflow.services.standard_import import ImportConfig, load_import_config


@pytest.fixture(autouse=True)
def _isolated_workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Keep logs, reports and stores inside the test's temporary directory."""

    work = tmp_path / "work"
    monkeypatch.setenv("EVIDFLOW_WORK_DIR", str(work))
    monkeypatch.setattr(core_logger, "_LOGGER", None, raising=False)
    yield work
    logger = logging.getLogger("evidflow")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture(scope="session")
def import_config() -> ImportConfig:
    return load_import_config()


HEADER: List[str] = ["Mã tiêu chuẩn", "Tên tiêu chuẩn", "Mô tả", "Thứ tự", "Trọng số", "Trạng thái"]


def make_table(*rows: Sequence[Optional[str]], header: Sequence[str] = HEADER) -> List[List[Optional[str]]]:
    return [list(header)] + [list(row) for row in rows]


class RecordingStore:
    """In-memory create operation that can be told to reject certain codes."""

    def __init__(self, reject: Sequence[str] = ()) -> None:
        self.reject = set(reject)
        self.created: list = []

    def create(self, payload) -> dict:
        if payload.code in self.reject:
            raise RuntimeError(f"standard code {payload.code} already exists")
        self.created.append(payload)
        return {"code": payload.code}


@pytest.fixture(name="make_table")
def _make_table_fixture():
    return make_table


@pytest.fixture(name="recording_store")
def _recording_store_fixture():
    return RecordingStore
