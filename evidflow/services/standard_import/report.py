"""Report aggregation and rendering for the standard import service."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Sequence

import pandas as pd

from .models import (
    Classification,
    ClassificationKind,
    CommitOutcome,
    CommitStatus,
    ImportPreview,
    ImportReport,
    OutcomeEntry,
    RejectedEntry,
)

REJECTS_FILE = "import_rejects.csv"
FAILURES_FILE = "import_commit_failures.csv"
REPORT_FILE = "import_report.md"


class ReportAggregator:
    """Fold classifications and commit outcomes into one report."""

    def preview(
        self,
        classified: Sequence[Classification],
        *,
        unmapped_headers: Iterable[str] = (),
        missing_fields: Iterable[str] = (),
    ) -> ImportPreview:
        ordered = sorted(classified, key=lambda item: item.row_index)
        return ImportPreview(
            total_rows=len(ordered),
            valid_count=sum(1 for item in ordered if item.kind is ClassificationKind.VALID),
            invalid_records=[
                RejectedEntry.from_classification(item)
                for item in ordered
                if item.kind is ClassificationKind.INVALID
            ],
            duplicate_records=[
                RejectedEntry.from_classification(item)
                for item in ordered
                if item.kind is ClassificationKind.DUPLICATE
            ],
            unmapped_headers=list(unmapped_headers),
            missing_fields=list(missing_fields),
        )

    def aggregate(
        self,
        classified: Sequence[Classification],
        outcomes: Sequence[CommitOutcome],
        *,
        unmapped_headers: Iterable[str] = (),
        missing_fields: Iterable[str] = (),
        cancelled: bool = False,
    ) -> ImportReport:
        preview = self.preview(classified, unmapped_headers=unmapped_headers, missing_fields=missing_fields)
        report = ImportReport(
            **preview.model_dump(),
            commit_outcomes=[OutcomeEntry.from_outcome(outcome) for outcome in outcomes],
            cancelled=cancelled,
        )
        report.check_invariants()
        return report


def _rejects_frame(entries: Sequence[RejectedEntry], kind: str) -> pd.DataFrame:
    rows = []
    for entry in entries:
        row: dict[str, object] = {"row": entry.row_index, "classification": kind}
        row.update(entry.record)
        messages = [issue.message for issue in entry.issues]
        if entry.duplicate_of is not None:
            messages.append(f"duplicate of row {entry.duplicate_of} (key {entry.key})")
        row["issues"] = "; ".join(messages)
        rows.append(row)
    return pd.DataFrame(rows)


def write_report(report: ImportReport, output_dir: Path) -> tuple[Path, Path | None, Path | None]:
    """Write a Markdown summary plus CSV side exports for rejected and failed rows."""

    output_dir.mkdir(parents=True, exist_ok=True)

    rejects_path: Path | None = None
    failures_path: Path | None = None

    if report.invalid_records or report.duplicate_records:
        rejects_path = output_dir / REJECTS_FILE
        frame = pd.concat(
            [
                _rejects_frame(report.invalid_records, ClassificationKind.INVALID.value),
                _rejects_frame(report.duplicate_records, ClassificationKind.DUPLICATE.value),
            ],
            ignore_index=True,
        )
        frame.sort_values("row").to_csv(rejects_path, index=False)

    failed = [item for item in report.commit_outcomes if item.status is not CommitStatus.COMMITTED]
    if failed:
        failures_path = output_dir / FAILURES_FILE
        pd.DataFrame([item.model_dump(mode="json") for item in failed]).to_csv(failures_path, index=False)

    report_path = output_dir / REPORT_FILE
    summary = report.summary()

    lines = ["# Standard Import Report", ""]
    lines.append(f"- Total rows: {summary['total']}")
    lines.append(f"- Valid rows: {summary['valid']}")
    lines.append(f"- Invalid rows: {summary['invalid']}")
    lines.append(f"- Duplicate rows: {summary['duplicates']}")
    lines.append(f"- Committed: {summary['committed']}")
    lines.append(f"- Commit failures: {summary['failed']}")
    if report.cancelled:
        lines.append(f"- Not processed (cancelled): {summary['not_processed']}")
    lines.append("")

    if report.unmapped_headers or report.missing_fields:
        lines.append("## Mapping diagnostics")
        if report.unmapped_headers:
            lines.append(f"- Ignored source columns: {', '.join(report.unmapped_headers)}")
        if report.missing_fields:
            lines.append(f"- Fields without a column: {', '.join(report.missing_fields)}")
        lines.append("")

    failures = [item for item in report.commit_outcomes if item.status is CommitStatus.FAILED]
    if failures:
        lines.append("## Commit failures")
        for item in failures:
            lines.append(f"- Row {item.row_index} ({item.code}): {item.error}")
        lines.append("")

    if rejects_path:
        lines.append(f"Rejected rows exported to `{rejects_path.name}`.")
    if failures_path:
        lines.append(f"Rows not committed exported to `{failures_path.name}`.")

    report_path.write_text("\n".join(lines), encoding="utf-8")
    return report_path, rejects_path, failures_path
