"""Canonical example table derived from the import configuration."""

from __future__ import annotations

from pathlib import Path
from typing import List, Mapping, Sequence

from evidflow_io.excel_writer import write_rows

from .mapping import ImportConfig
from .models import CanonicalField


def _columns(config: ImportConfig) -> List[CanonicalField]:
    return [f for f in CanonicalField.record_fields() if f.value in config.input_columns]


def template_headers(config: ImportConfig) -> List[str]:
    return [config.preferred_header(f) for f in _columns(config)]


def template_table(config: ImportConfig) -> List[List[str]]:
    """Header row plus the configured sample rows."""

    columns = _columns(config)
    table = [template_headers(config)]
    for sample in config.template.samples:
        table.append([str(sample.get(f.value, "")) for f in columns])
    return table


def export_template(output_path: Path, config: ImportConfig) -> Path:
    """Write the template workbook to ``output_path``."""

    table = template_table(config)
    widths = [config.template.column_widths.get(f.value) for f in _columns(config)]
    return write_rows(output_path, table[0], table[1:], sheet=config.template.sheet, column_widths=widths)


def export_records(
    output_path: Path,
    config: ImportConfig,
    records: Sequence[Mapping[str, object]],
    *,
    sheet: str = "Standards",
) -> Path:
    """Write stored standards using the template's display headers."""

    columns = _columns(config)
    rows = [["" if record.get(f.value) is None else record.get(f.value) for f in columns] for record in records]
    widths = [config.template.column_widths.get(f.value) for f in columns]
    return write_rows(output_path, template_headers(config), rows, sheet=sheet, column_widths=widths)
