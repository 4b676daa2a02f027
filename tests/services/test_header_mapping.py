from __future__ import annotations

from pathlib import Path

import pytest

from evidflow.core.errors import ConfigError
from evidflow.services.standard_import.mapping import (
    HeaderMapper,
    load_import_config,
    missing_fields,
    normalize_header,
    unmapped_headers,
)
from evidflow.services.standard_import.models import CanonicalField, RawRow


def test_synonyms_resolve_case_and_whitespace_insensitively(import_config) -> None:
    mapper = HeaderMapper.from_config(import_config)

    assert mapper.resolve("Mã tiêu chuẩn") is CanonicalField.CODE
    assert mapper.resolve("  CODE ") is CanonicalField.CODE
    assert mapper.resolve("tên   tiêu chuẩn") is CanonicalField.NAME
    assert mapper.resolve("STT") is CanonicalField.ORDER
    assert mapper.resolve("Ghi chú") is CanonicalField.UNMAPPED
    assert mapper.resolve(None) is CanonicalField.UNMAPPED


def test_unknown_headers_are_ignored_not_rejected(import_config) -> None:
    mapper = HeaderMapper.from_config(import_config)
    mapping = mapper.map(["Code", "Ghi chú", "Name", ""])

    assert [item.field for item in mapping] == [
        CanonicalField.CODE,
        CanonicalField.UNMAPPED,
        CanonicalField.NAME,
        CanonicalField.UNMAPPED,
    ]
    assert unmapped_headers(mapping) == ["Ghi chú"]
    assert missing_fields(mapping, ["code", "name"]) == []
    assert missing_fields(mapping[1:], ["code", "name"]) == ["code"]


def test_repeated_header_keeps_first_column(import_config) -> None:
    mapper = HeaderMapper.from_config(import_config)
    mapping = mapper.map(["Code", "Mã", "Name"])

    assert mapping[0].field is CanonicalField.CODE
    assert mapping[1].field is CanonicalField.UNMAPPED
    records = mapper.apply(mapping, [RawRow(row_index=2, cells=("1", "9", "Alpha"))])
    assert records[0].code == "1"


def test_apply_drops_blank_rows_and_pads_short_rows(import_config) -> None:
    mapper = HeaderMapper.from_config(import_config)
    mapping = mapper.map(["Code", "Name", "Status"])
    rows = [
        RawRow(row_index=2, cells=("1", "Alpha", "active")),
        RawRow(row_index=3, cells=("", "  ", None)),
        RawRow(row_index=4, cells=("2",)),
    ]

    records = mapper.apply(mapping, rows)

    assert [record.row_index for record in records] == [2, 4]
    assert records[1].code == "2"
    assert records[1].name is None
    assert records[1].status is None


def test_same_synonym_for_two_fields_is_a_config_error() -> None:
    with pytest.raises(ConfigError):
        HeaderMapper({CanonicalField.CODE: ["Mã"], CanonicalField.NAME: ["mã"]})


def test_normalize_header_composes_unicode() -> None:
    decomposed = "Ma\u0303"
    assert normalize_header(decomposed) == normalize_header("M\u00e3")


def test_load_import_config_rejects_unknown_fields(tmp_path: Path) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text("input_columns:\n  colour: [Colour]\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_import_config(path)


def test_load_import_config_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_import_config(tmp_path / "absent.yaml")
