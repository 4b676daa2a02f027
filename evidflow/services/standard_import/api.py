"""Public API for the standard import service."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from evidflow.core.errors import ImportContextError, ImportStructureError

from .cleaning import build_payload
from .commit import BatchCommitter
from .dedupe import DuplicateDetector
from .mapping import HeaderMapper, ImportConfig, missing_fields, unmapped_headers
from .models import (
    Classification,
    ClassificationKind,
    CommitStatus,
    FieldMapping,
    ImportContext,
    ImportPreview,
    ImportReport,
    MappedRecord,
    RawRow,
    StandardPayload,
    is_blank,
)
from .report import ReportAggregator
from .validate import RecordValidator

LOGGER = logging.getLogger(__name__)

CreateOperation = Callable[[StandardPayload], Any]
ProgressCB = Callable[[str, str], None]
Table = Sequence[Sequence[Optional[str]]]


def parse_table(table: Table) -> Tuple[List[str], List[RawRow]]:
    """Split a decoded table into its header row and data rows.

    Data rows are numbered by their position in the source, the header being
    row 1. Raises ``ImportStructureError`` when there is no usable header.
    """

    if not table:
        raise ImportStructureError("the source table is empty; a header row is required")
    header_cells = list(table[0])
    if all(is_blank(cell) for cell in header_cells):
        raise ImportStructureError("the header row is missing or blank")
    headers = ["" if cell is None else str(cell) for cell in header_cells]
    rows = [
        RawRow(row_index=position, cells=tuple(None if cell is None else str(cell) for cell in raw))
        for position, raw in enumerate(table[1:], start=2)
    ]
    return headers, rows


def resolve_context(program_id: object, organization_id: object) -> ImportContext:
    try:
        return ImportContext(program_id=program_id, organization_id=organization_id)
    except ValidationError as exc:
        raise ImportContextError("both a program and an organization must be selected") from exc


class ImportPipeline:
    """Compose mapping, classification, commit and reporting for one batch.

    The pipeline keeps only read-only configuration, so a single instance can
    serve any number of imports.
    """

    def __init__(
        self,
        config: ImportConfig,
        *,
        max_workers: int = 1,
        mapper: HeaderMapper | None = None,
        validator: RecordValidator | None = None,
        detector: DuplicateDetector | None = None,
        committer: BatchCommitter | None = None,
        aggregator: ReportAggregator | None = None,
    ) -> None:
        self.config = config
        self.mapper = mapper or HeaderMapper.from_config(config)
        self.validator = validator or RecordValidator.from_rules(config.validations)
        self.detector = detector or DuplicateDetector(config.key)
        self.committer = committer or BatchCommitter(max_workers=max_workers)
        self.aggregator = aggregator or ReportAggregator()

    # ------------------------------------------------------------------
    def map_records(self, table: Table) -> Tuple[List[FieldMapping], List[MappedRecord]]:
        headers, rows = parse_table(table)
        mapping = self.mapper.map(headers)
        records = self.mapper.apply(mapping, rows)
        return mapping, records

    def classify(self, records: Iterable[MappedRecord]) -> List[Classification]:
        """Assign exactly one classification to every record, in source order."""

        ordered = sorted(records, key=lambda item: item.row_index)
        conflicts = self.detector.detect(ordered, self.config.key)
        classified: List[Classification] = []
        for record in ordered:
            issues = tuple(self.validator.validate(record))
            duplicate_of = conflicts.get(record.row_index)
            if issues:
                kind = ClassificationKind.INVALID
            elif duplicate_of is not None:
                kind = ClassificationKind.DUPLICATE
            else:
                kind = ClassificationKind.VALID
            classified.append(
                Classification(
                    record=record,
                    kind=kind,
                    issues=issues,
                    duplicate_of=duplicate_of,
                    key=record.text(self.config.key),
                )
            )
        return classified

    def _diagnostics(self, mapping: Sequence[FieldMapping]) -> dict[str, List[str]]:
        return {
            "unmapped_headers": unmapped_headers(mapping),
            "missing_fields": missing_fields(mapping, self.config.validations.required),
        }

    def preview(self, table: Table) -> ImportPreview:
        """Parse, map and classify without committing anything."""

        mapping, records = self.map_records(table)
        classified = self.classify(records)
        return self.aggregator.preview(classified, **self._diagnostics(mapping))

    def run(
        self,
        table: Table,
        create_fn: CreateOperation,
        context: ImportContext,
        *,
        cancel_event: threading.Event | None = None,
        progress_cb: ProgressCB | None = None,
    ) -> ImportReport:
        """Import one batch and return the complete report."""

        def progress(stage: str, detail: str = "") -> None:
            if progress_cb:
                progress_cb(stage, detail)
            LOGGER.info("%s - %s", stage, detail)

        if not isinstance(context, ImportContext):
            raise ImportContextError("an ImportContext is required")

        progress("1/4 map", "reading header row")
        mapping, records = self.map_records(table)
        diagnostics = self._diagnostics(mapping)
        if diagnostics["unmapped_headers"]:
            LOGGER.warning("import.mapping ignored_columns=%s", diagnostics["unmapped_headers"])
        progress("1/4 map", f"{len(records)} rows")

        progress("2/4 classify", "validating and checking duplicates")
        classified = self.classify(records)
        eligible = [item.record for item in classified if item.eligible]
        progress("2/4 classify", f"{len(eligible)} eligible of {len(classified)}")

        progress("3/4 commit", f"{len(eligible)} records")

        def create(record: MappedRecord) -> Any:
            return create_fn(build_payload(record, context))

        outcomes = self.committer.commit(eligible, create, cancel_event=cancel_event)
        cancelled = any(item.status is CommitStatus.NOT_PROCESSED for item in outcomes)

        report = self.aggregator.aggregate(classified, outcomes, cancelled=cancelled, **diagnostics)
        progress(
            "4/4 report",
            "total={total} valid={valid} invalid={invalid} duplicates={duplicates} "
            "committed={committed} failed={failed} not_processed={not_processed}".format(**report.summary()),
        )
        return report


def run_import(
    table: Table,
    create_fn: CreateOperation,
    *,
    program_id: str,
    organization_id: str,
    config: ImportConfig,
    max_workers: int = 1,
    cancel_event: threading.Event | None = None,
) -> ImportReport:
    """One-shot convenience wrapper around ``ImportPipeline.run``."""

    context = resolve_context(program_id, organization_id)
    pipeline = ImportPipeline(config, max_workers=max_workers)
    return pipeline.run(table, create_fn, context, cancel_event=cancel_event)
