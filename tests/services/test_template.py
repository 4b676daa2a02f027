from __future__ import annotations

from pathlib import Path

from openpyxl import load_workbook

from evidflow.services.standard_import import ImportPipeline
from evidflow.services.standard_import.template import (
    export_records,
    export_template,
    template_headers,
    template_table,
)
from evidflow_io import read_table


def test_template_headers_use_preferred_labels(import_config) -> None:
    headers = template_headers(import_config)

    assert headers[0] == "Mã tiêu chuẩn"
    assert headers[1] == "Tên tiêu chuẩn"
    assert len(headers) == 8


def test_template_samples_pass_validation(import_config) -> None:
    preview = ImportPipeline(import_config).preview(template_table(import_config))

    assert preview.unmapped_headers == []
    assert preview.missing_fields == []
    assert preview.total_rows == len(import_config.template.samples)
    assert preview.valid_count == preview.total_rows


def test_exported_template_reads_back_through_the_importer(import_config, tmp_path: Path) -> None:
    path = export_template(tmp_path / "standards_template.xlsx", import_config)

    workbook = load_workbook(path)
    sheet = workbook[import_config.template.sheet]
    assert sheet.column_dimensions["B"].width == 50
    workbook.close()

    preview = ImportPipeline(import_config).preview(read_table(path))
    assert preview.valid_count == 2
    assert preview.invalid_count == 0


def test_export_records_writes_stored_rows(import_config, tmp_path: Path) -> None:
    rows = [{"code": "01", "name": "Mission", "order": 1, "status": "active", "program_id": "p"}]

    path = export_records(tmp_path / "export.xlsx", import_config, rows)

    table = read_table(path)
    assert table[0] == template_headers(import_config)
    assert table[1][0] == "01"
    assert table[1][1] == "Mission"
    assert table[1][-1] == "active"
