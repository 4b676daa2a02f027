from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from evidflow_io import read_table
from evidflow_persist import StandardsStore
from evidflow.services.standard_import import (
    ImportConfig,
    ImportContext,
    ImportPipeline,
    ImportReport,
    load_import_config,
)
from evidflow.services.standard_import.report import write_report

from .logger import get_logger
from .profiles import Profile, ensure_work_dirs, resolve_config_path, resolve_work_path


ProgressCB = Callable[[str, str], None]

DEFAULT_STORE_PATH = "store/standards.xlsx"


@dataclass
class ImportJobResult:
    report: ImportReport
    report_path: Path
    rejects_path: Path | None
    failures_path: Path | None
    json_path: Path


def config_for_profile(profile: Profile | None) -> ImportConfig:
    config_file = profile.get("import_options.config_file") if profile else None
    if config_file:
        return load_import_config(resolve_config_path(config_file))
    return load_import_config()


def store_for_profile(profile: Profile | None, store_path: str | Path | None = None) -> StandardsStore:
    target = store_path or (profile.get("store.path") if profile else None) or DEFAULT_STORE_PATH
    return StandardsStore(resolve_work_path(target))


class ImportJob:
    """Coordinates Read -> Import -> Report for one source file."""

    def __init__(
        self,
        config: ImportConfig,
        store: StandardsStore,
        *,
        max_workers: int = 1,
        logger=None,
    ) -> None:
        self.logger = logger or get_logger()
        self.config = config
        self.store = store
        self.pipeline = ImportPipeline(config, max_workers=max_workers)
        self.work_dirs = ensure_work_dirs()

    def run(
        self,
        source: Path,
        context: ImportContext,
        out_dir: Path | None = None,
        progress_cb: ProgressCB | None = None,
        cancel_event: threading.Event | None = None,
    ) -> ImportJobResult:
        def progress(stage: str, detail: str = "") -> None:
            if progress_cb:
                progress_cb(stage, detail)
            self.logger.info("%s - %s", stage, detail)

        out_dir = out_dir or self.work_dirs["out"]

        progress("read", f"{source.name}")
        table = read_table(source)

        self.store.init_store()
        report = self.pipeline.run(
            table,
            self.store.create,
            context,
            cancel_event=cancel_event,
            progress_cb=progress_cb,
        )

        report_path, rejects_path, failures_path = write_report(report, out_dir)
        json_path = out_dir / "import_report.json"
        json_path.write_text(json.dumps(report.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
        progress("report", f"{report_path.name}")

        return ImportJobResult(
            report=report,
            report_path=report_path,
            rejects_path=rejects_path,
            failures_path=failures_path,
            json_path=json_path,
        )
